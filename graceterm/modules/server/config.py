import ssl
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from ..terminator.config import TerminatorOptions


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=0, le=65535)  # 0 picks a free port
    certfile: Optional[str] = None
    keyfile: Optional[str] = None
    backlog: int = Field(default=100, gt=0)
    keepalive_timeout: float = Field(default=75.0, gt=0)

    @model_validator(mode='after')
    def validate_tls_files(self) -> 'ServerConfig':
        """A private key is only meaningful alongside a certificate."""
        if self.keyfile is not None and self.certfile is None:
            raise ValueError("'keyfile' requires 'certfile'")
        return self

    @property
    def secure(self) -> bool:
        return self.certfile is not None


class ServeConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    shutdown: TerminatorOptions = Field(default_factory=TerminatorOptions)
    delay: float = Field(default=0.0, ge=0)  # seconds the demo handler waits before answering


def create_ssl_context(config: ServerConfig) -> Optional[ssl.SSLContext]:
    """Build a server-side TLS context, or None for a plaintext server."""
    if not config.secure:
        return None

    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    context.load_cert_chain(config.certfile, config.keyfile)
    return context


def load_serve_config(yaml_content: str) -> ServeConfig:
    """
    Parse YAML content into a ServeConfig.

    Args:
        yaml_content: The YAML document, possibly empty

    Returns:
        ServeConfig: The validated configuration

    Raises:
        ValueError: If the YAML content is invalid
    """
    try:
        data = yaml.safe_load(yaml_content) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML format: {str(e)}")

    if not isinstance(data, dict):
        raise ValueError("Serve config must be a YAML object")

    return validate_serve_config(data)


def validate_serve_config(data: Dict[str, Any]) -> ServeConfig:
    """Validate a plain dict into a ServeConfig, raising ValueError on failure."""
    try:
        return ServeConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid serve config: {str(e)}")
