"""Configuration models"""
from typing import Optional
from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Server configuration"""
    host: str = "0.0.0.0"
    port: int = 8787
    master_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    log_level: str = "INFO"
    log_file: str = "logs/app.log"


class UpstreamConfig(BaseModel):
    """Gemini API connection settings"""
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    api_key: Optional[str] = None
    verify_ssl: bool = True
    timeout_secs: float = Field(default=300.0, gt=0)
    proxy: Optional[str] = None


class StreamConfig(BaseModel):
    """Streaming behavior toggles"""
    # Write a data-only error frame before closing when upstream fails mid-stream
    emit_error_frame: bool = False
    # Surface thought parts as visible content instead of the reasoning field
    thinking_as_content: bool = False


class ModelConfig(BaseModel):
    """Model catalog entry"""
    id: str
    description: str = ""
    context_window: int = Field(default=1048576, ge=1)
    max_tokens: int = Field(default=65536, ge=1)


class AppConfig(BaseModel):
    """Application configuration"""
    server: ServerConfig = Field(default_factory=ServerConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    models: list[ModelConfig] = Field(default_factory=list)

    def get_model(self, model_id: str) -> Optional[ModelConfig]:
        """Look up a catalog entry by id"""
        for model in self.models:
            if model.id == model_id:
                return model
        return None

    def model_ids(self) -> list[str]:
        return [model.id for model in self.models]
