"""Configuration management for SDLC Auditor."""

import os
import yaml
from pathlib import Path
from typing import Dict, List, Optional, Any
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv

from .models import OutputFormat


PLACEHOLDER_API_KEYS = {"", "your_groq_api_key_here"}


class ConfigError(Exception):
    """Raised when configuration cannot be loaded."""
    pass


class StaticAnalysisConfig(BaseModel):
    """Configuration for the external analyzers."""

    # Tool enablement
    enable_semgrep: bool = True
    enable_bandit: bool = True
    enable_eslint: bool = True
    enable_cppcheck: bool = True
    enable_flawfinder: bool = True
    enable_pmd: bool = True

    # Per-adapter timeouts
    semgrep_timeout_ms: int = Field(default=120000, gt=0)
    bandit_timeout_ms: int = Field(default=60000, gt=0)
    eslint_timeout_ms: int = Field(default=60000, gt=0)
    cppcheck_timeout_ms: int = Field(default=60000, gt=0)
    flawfinder_timeout_ms: int = Field(default=60000, gt=0)
    pmd_timeout_ms: int = Field(default=90000, gt=0)

    # Extra wall-clock allowance on top of the slowest adapter
    run_timeout_margin_seconds: float = Field(default=5.0, ge=0.0)

    # Semgrep configuration
    semgrep_rules: List[str] = Field(default_factory=lambda: ["auto"])

    # Bandit configuration
    bandit_skip_ids: List[str] = Field(default_factory=list)

    # ESLint configuration
    eslint_command: List[str] = Field(default_factory=lambda: ["npx", "--no-install", "eslint"])
    # Flat config file; without one the built-in security rules are used
    eslint_config: Optional[Path] = None
    eslint_rules: List[str] = Field(default_factory=list)

    # PMD configuration
    pmd_ruleset: str = "rulesets/java/quickstart.xml"


class LLMConfig(BaseModel):
    """Configuration for the text-generation service."""

    # Provider settings
    provider: str = "groq"
    model: str = "llama-3.3-70b-versatile"
    api_key: Optional[str] = Field(default=None, validate_default=True)

    # Request configuration
    timeout_seconds: int = 30
    threat_model_timeout_seconds: int = 40
    max_retries: int = 3
    retry_delay: float = 1.0
    context_window: int = 32768

    # Narrative review
    narrative_max_tokens: int = 800
    narrative_temperature: float = 0.3

    @field_validator('api_key', mode='before')
    @classmethod
    def load_api_key(cls, v):
        """Load API key from environment if not provided."""
        if v is None:
            v = os.getenv('GROQ_API_KEY') or os.getenv('GROQ_API')
        if v is not None and v.strip() in PLACEHOLDER_API_KEYS:
            return None
        return v

    @property
    def has_credentials(self) -> bool:
        return self.api_key is not None


class ServerConfig(BaseModel):
    """Configuration for the HTTP service."""

    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class OutputConfig(BaseModel):
    """Configuration for CLI output formatting."""

    format: OutputFormat = OutputFormat.TABLE
    output_file: Optional[Path] = None
    include_raw: bool = False

    # Verbosity
    verbose: bool = False
    quiet: bool = False


class Config(BaseModel):
    """Main configuration class for SDLC Auditor."""

    # Sub-configurations
    static_analysis: StaticAnalysisConfig = Field(default_factory=StaticAnalysisConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    # Global settings
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def load_from_file(cls, config_path: Path) -> "Config":
        """Load configuration from YAML file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            try:
                config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {config_path}")

        return cls(**config_data)

    @classmethod
    def load_from_dict(cls, config_dict: Dict[str, Any]) -> "Config":
        """Load configuration from dictionary."""
        return cls(**config_dict)

    @classmethod
    def get_default_config(cls) -> "Config":
        """Get default configuration."""
        # Load environment variables
        load_dotenv()
        return cls()

    @classmethod
    def find_config_file(cls, start_path: Optional[Path] = None) -> Optional[Path]:
        """Find configuration file in current directory or parent directories."""
        if start_path is None:
            start_path = Path.cwd()

        config_names = [
            ".sdlcaudit.yaml",
            ".sdlcaudit.yml",
            "sdlcaudit.yaml",
            "sdlcaudit.yml",
        ]

        current_path = start_path.resolve()

        # Search up the directory tree
        while current_path != current_path.parent:
            for config_name in config_names:
                config_file = current_path / config_name
                if config_file.exists():
                    return config_file
            current_path = current_path.parent

        return None

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)

        # Never write the credential to disk
        config_dict = self.model_dump(mode='json')
        config_dict['llm']['api_key'] = None

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(config_dict, f, default_flow_style=False, indent=2)

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if not self.llm.has_credentials:
            issues.append("LLM API key not configured; AI narrative will be replaced by an explanation")

        sa = self.static_analysis
        if not any([sa.enable_semgrep, sa.enable_bandit, sa.enable_eslint,
                    sa.enable_cppcheck, sa.enable_flawfinder, sa.enable_pmd]):
            issues.append("No static analysis tools are enabled")

        if not sa.semgrep_rules and sa.enable_semgrep:
            issues.append("Semgrep is enabled but no rules are configured")

        if not sa.eslint_command and sa.enable_eslint:
            issues.append("ESLint is enabled but eslint_command is empty")

        if sa.enable_eslint and sa.eslint_config and not sa.eslint_config.exists():
            issues.append(f"ESLint config file does not exist: {sa.eslint_config}")

        if self.server.port <= 0 or self.server.port > 65535:
            issues.append(f"Invalid server port: {self.server.port}")

        if self.output.output_file and not self.output.output_file.parent.exists():
            issues.append(f"Output directory does not exist: {self.output.output_file.parent}")

        return issues

    def merge_with_cli_args(self, **cli_args) -> "Config":
        """Merge configuration with CLI arguments."""
        config_dict = self.model_dump()

        # Map CLI arguments to config structure
        cli_mapping = {
            'verbose': 'output.verbose',
            'quiet': 'output.quiet',
            'format': 'output.format',
            'output': 'output.output_file',
            'host': 'server.host',
            'port': 'server.port',
            'model': 'llm.model',
        }

        for cli_key, cli_value in cli_args.items():
            if cli_value is not None and cli_key in cli_mapping:
                config_path = cli_mapping[cli_key].split('.')
                current = config_dict

                for path_part in config_path[:-1]:
                    current = current[path_part]

                current[config_path[-1]] = cli_value

        return Config(**config_dict)
