from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	# Text, structured, grounded and chat calls
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	# Answer illustrations
	gemini_image_model: str = Field(default="gemini-2.5-flash-image", validation_alias="GEMINI_IMAGE_MODEL")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")
	# Grounded answers and image generation are slow; keep this generous
	gemini_timeout_seconds: float = Field(default=90.0, validation_alias="GEMINI_TIMEOUT_SECONDS")

	generation_temperature: float = Field(default=0.7, validation_alias="GENERATION_TEMPERATURE")
	image_aspect_ratio: str = Field(default="16:9", validation_alias="IMAGE_ASPECT_RATIO")

	# Oldest wizard sessions are dropped past this many
	wizard_max_sessions: int = Field(default=200, validation_alias="WIZARD_MAX_SESSIONS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
