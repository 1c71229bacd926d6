"""Configuration management for the cost analyzer"""

import json
import os
from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

# Load environment variables
load_dotenv()


class ModelSpecificConfig(BaseModel):
    """Model-specific configuration"""
    api_key_env: Optional[str] = None
    base_url: Optional[str] = None
    model: Optional[str] = None
    region: Optional[str] = None  # Bedrock only
    max_tokens: int = 2000
    temperature: float = 0.3


class ModelConfig(BaseModel):
    """Model configuration"""
    provider: Literal["claude", "bedrock", "openai"] = "claude"
    claude: ModelSpecificConfig = Field(
        default_factory=lambda: ModelSpecificConfig(
            api_key_env="ANTHROPIC_API_KEY", model="claude-sonnet-4-5"
        )
    )
    bedrock: ModelSpecificConfig = Field(
        default_factory=lambda: ModelSpecificConfig(
            model="us.anthropic.claude-3-7-sonnet-20250219-v1:0", region="us-east-1"
        )
    )
    openai: ModelSpecificConfig = Field(
        default_factory=lambda: ModelSpecificConfig(
            api_key_env="OPENAI_API_KEY", model="gpt-4o"
        )
    )


class AnalysisConfig(BaseModel):
    """Run orchestration settings"""
    top_n: int = Field(default=10, ge=1)
    step_budget: int = Field(default=99, ge=1)  # model turns per step
    execution_scope: Literal["run", "step"] = "run"
    output_dir: str = "./output"
    include_charts: bool = True
    chart_analysis_max_tokens: int = 1000
    synthesis_max_tokens: int = 4000


class CredentialsConfig(BaseModel):
    """Where AWS credentials come from"""
    path: str = ".aws-creds.json"
    default_region: str = "us-east-1"


class RenderingConfig(BaseModel):
    """Chart rendering settings"""
    scale: float = Field(default=2.0, gt=0)


class Config(BaseModel):
    """Main configuration"""
    model: ModelConfig = Field(default_factory=ModelConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    rendering: RenderingConfig = Field(default_factory=RenderingConfig)

    @classmethod
    def from_yaml(cls, config_path: str = "config.yaml") -> "Config":
        """Load configuration from YAML file"""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_file, "r") as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)

    def get_api_key(self, model_type: str) -> Optional[str]:
        """Get API key for specific model type"""
        model_config = getattr(self.model, model_type, None)
        if model_config and model_config.api_key_env:
            return os.getenv(model_config.api_key_env)
        return None


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Build a configuration for one run.

    Args:
        config_path: YAML file to read. Defaults to $COST_ANALYZER_CONFIG, then
            config.yaml; built-in defaults are used when that file is absent.

    Returns:
        A fresh Config instance (never shared between runs)
    """
    path = config_path or os.getenv("COST_ANALYZER_CONFIG", "config.yaml")
    if config_path is None and not Path(path).exists():
        return Config()
    return Config.from_yaml(path)


class AwsCredentials(BaseModel):
    """Read-only AWS credential bundle shared by all adapters of a run"""
    model_config = ConfigDict(frozen=True)

    access_key_id: str
    secret_access_key: str
    session_token: Optional[str] = None
    region: str = "us-east-1"

    def masked_access_key(self) -> str:
        return f"{self.access_key_id[:8]}..." if self.access_key_id else "undefined"

    def boto3_kwargs(self) -> dict:
        """Keyword arguments for boto3.Session"""
        kwargs = {
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key,
        }
        if self.session_token:
            kwargs["aws_session_token"] = self.session_token
        return kwargs


class EnvironmentCredentials(BaseSettings):
    """AWS credentials taken from the standard environment variables"""
    model_config = SettingsConfigDict(env_prefix="AWS_", extra="ignore")

    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    region: Optional[str] = None


def load_credentials(
    credentials_path: Union[str, Path] = ".aws-creds.json",
    default_region: str = "us-east-1",
) -> AwsCredentials:
    """
    Load AWS credentials from a credentials file, falling back to the environment.

    The file has the shape returned by `aws sts get-session-token`:
    {"Credentials": {"AccessKeyId", "SecretAccessKey", "SessionToken"}, "region"}

    Args:
        credentials_path: Path to the JSON credentials file
        default_region: Region used when none is given

    Returns:
        Validated credentials

    Raises:
        ConfigurationError: If no usable credentials were found; the message
            lists every missing or invalid field
    """
    full_path = Path(credentials_path).resolve()

    if full_path.exists():
        try:
            with open(full_path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Failed to load AWS credentials: {full_path} is not valid JSON ({e})"
            ) from e

        creds = data.get("Credentials") if isinstance(data, dict) else None
        creds = creds if isinstance(creds, dict) else {}
        missing = [
            f"Credentials.{field}"
            for field in ("AccessKeyId", "SecretAccessKey")
            if not creds.get(field)
        ]
        if missing:
            raise ConfigurationError(
                f"Failed to load AWS credentials: invalid credentials file {full_path}. "
                f"Missing fields: {', '.join(missing)}"
            )

        return _build_credentials(
            f"credentials file {full_path}",
            access_key_id=creds["AccessKeyId"],
            secret_access_key=creds["SecretAccessKey"],
            session_token=creds.get("SessionToken"),
            region=data.get("region") or default_region,
        )

    env = EnvironmentCredentials()
    missing = [
        name
        for name, value in (
            ("AWS_ACCESS_KEY_ID", env.access_key_id),
            ("AWS_SECRET_ACCESS_KEY", env.secret_access_key),
        )
        if not value
    ]
    if missing:
        raise ConfigurationError(
            f"Failed to load AWS credentials: credentials file not found at {full_path} "
            f"and environment is missing {', '.join(missing)}"
        )

    return _build_credentials(
        "environment",
        access_key_id=env.access_key_id,
        secret_access_key=env.secret_access_key,
        session_token=env.session_token,
        region=env.region or default_region,
    )


def _build_credentials(source: str, **fields) -> AwsCredentials:
    try:
        return AwsCredentials(**fields)
    except ValidationError as e:
        invalid = [
            f"{'.'.join(str(part) for part in error['loc'])} ({error['msg']})"
            for error in e.errors()
        ]
        raise ConfigurationError(
            f"Failed to load AWS credentials: invalid {source}. "
            f"Invalid fields: {', '.join(invalid)}"
        ) from e


def create_example_credentials_file(output_path: Union[str, Path]) -> Path:
    """Write a credentials template for the user to fill in"""
    example = {
        "Credentials": {
            "AccessKeyId": "AKIA...",
            "SecretAccessKey": "your-secret-access-key",
            "SessionToken": "your-session-token-if-using-temporary-credentials",
        },
        "region": "us-east-1",
    }
    path = Path(output_path)
    with open(path, "w") as f:
        json.dump(example, f, indent=2)
    return path
