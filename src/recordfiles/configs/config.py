import functools
import sys
import tempfile
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings

load_dotenv(
    override=True,  # Override existing environment variables
)


class Config(BaseSettings):
    # Storage configuration
    storage_backend: str = "local"  # Options: "local", "s3"
    local_path: str = "/app/uploads"  # Root directory holding one folder per bucket
    local_base_url: str = "/files/"  # Default base URL for local files
    file_url_expires: int = 3600  # Lifetime of pre-signed URLs in seconds

    # S3 configuration
    s3_endpoint_url: str = ""  # Leave empty for AWS, set for MinIO / R2
    s3_region: str = ""
    s3_bucket_prefix: str = ""  # Prepended to every bucket name
    s3_public: bool = False  # Whether to use raw URLs instead of pre-signed ones

    # Transform staging directory, replaces framework runtime aliases
    temp_path: str = str(Path(tempfile.gettempdir()) / "recordfiles")

    @field_validator("storage_backend", mode="before")
    @classmethod
    def validate_storage_backend(cls, v) -> str:
        if not isinstance(v, str):
            raise ValueError(f"storage_backend must be a string, got {type(v)}")
        v_lower = v.lower()
        valid_backends = ["local", "s3"]
        if v_lower not in valid_backends:
            raise ValueError(
                f"storage_backend must be one of {valid_backends}, got '{v}'"
            )
        return v_lower

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


@functools.lru_cache(maxsize=1)
def get_config() -> Config:
    try:
        return Config()
    except ValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error while loading configuration: {e}", file=sys.stderr)
        sys.exit(1)
