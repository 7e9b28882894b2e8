from dataclasses import dataclass

from src.authgate.core.services import AuthComponents, DbSessionService
from src.authgate.runtime.config.config_data import ConfigData


@dataclass
class ApplicationDependencies:
    config: ConfigData
    components: AuthComponents
    database_service: DbSessionService

    @classmethod
    def build(
        cls, config: ConfigData, database_service: DbSessionService | None = None
    ) -> "ApplicationDependencies":
        return cls(
            config=config,
            components=AuthComponents.from_config(config),
            database_service=database_service or DbSessionService(config),
        )
