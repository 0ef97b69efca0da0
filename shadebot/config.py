from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./shadebot.db"
    debug: bool = False
    log_level: str = "INFO"

    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    store_url: str = "https://tienda.example.com/malla-sombra"
    persona_names: str = "Paula,Sofía,Camila,Valeria,Daniela"
    catalog_path: Optional[str] = None
    intents_path: Optional[str] = None

    classification_confidence_threshold: float = 0.6
    edge_case_confidence_threshold: float = 0.9
    human_takeover_staleness_hours: float = 2.0
    oversized_repeat_limit: int = 3
    max_clarifications: int = 1
    unknown_escalation_threshold: int = 2
    business_hours_unknown_threshold: int = 1
    regreet_window_hours: float = 1.0
    dimension_tolerance: float = 0.2

    business_timezone: str = "America/Mexico_City"
    business_hours_start: int = 9
    business_hours_end: int = 18

    class Config:
        env_file = ".env"
        extra = "ignore"

    def persona_name_list(self) -> list[str]:
        names = [name.strip() for name in self.persona_names.split(",") if name.strip()]
        return names or ["Paula"]


settings = Settings()
