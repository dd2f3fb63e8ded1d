"""Configuration management using Pydantic v2 models.

:class:`StatisticsConfiguration` selects how statistics are evaluated:
the bias mode of the moment statistics, the NaN policy applied to array
input and whether NaN handling may work in place.  It also carries the
logging setup for the ``robust_moments`` logger.

Examples:
    Build a configuration in code::

        from robust_moments.config import StatisticsConfiguration

        config = StatisticsConfiguration(biased=True, nan_policy="exclude")
        transformer = config.nan_transformer()

    Load from YAML::

        config = StatisticsConfiguration.from_yaml(Path("statistics.yaml"))
        config.setup_logging()
"""

import logging
from pathlib import Path
import sys
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
import yaml

from .nan_transformers import NaNPolicy, NaNTransformer, create_nan_transformer

PACKAGE_LOGGER = "robust_moments"


class LoggingConfig(BaseModel):
    """Logging configuration.

    Controls logging behavior including level, output destinations,
    and message formatting.
    """

    enabled: bool = Field(default=True, description="Enable logging")
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING", description="Logging level"
    )
    log_file: Optional[str] = Field(
        default=None, description="Log file path (None=no file logging)"
    )
    console_output: bool = Field(default=True, description="Log to console")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )


class StatisticsConfiguration(BaseModel):
    """Evaluation options for statistics over arrays.

    Attributes:
        biased: Use the biased (population) form of variance, standard
            deviation, skewness and kurtosis.
        nan_policy: Handling of NaN values in array input.
        copy_input: NaN handling works on a copy of the input (``False`` allows
            the input array range to be reordered in place).  Read from and
            written to YAML under the key ``copy``.
        logging: Logging configuration.
    """

    biased: bool = Field(default=False, description="Use biased moment statistics")
    nan_policy: NaNPolicy = Field(
        default=NaNPolicy.INCLUDE, description="Handling of NaN values in array input"
    )
    copy_input: bool = Field(
        default=True,
        alias="copy",
        description="Apply NaN handling to a copy of the input",
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def with_biased(self, biased: bool) -> "StatisticsConfiguration":
        """Return a copy with the bias mode replaced."""
        return self.model_copy(update={"biased": biased})

    def with_nan_policy(self, nan_policy: NaNPolicy) -> "StatisticsConfiguration":
        """Return a copy with the NaN policy replaced."""
        return self.model_copy(update={"nan_policy": NaNPolicy(nan_policy)})

    def nan_transformer(self) -> NaNTransformer:
        """Create the NaN transformer for the configured policy."""
        return create_nan_transformer(self.nan_policy, self.copy_input)

    @classmethod
    def from_yaml(cls, path: Path) -> "StatisticsConfiguration":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            Configuration with validated parameters.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValidationError: If configuration is invalid.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        # Remove private anchors if present
        data = {k: v for k, v in data.items() if not k.startswith("_")}

        return cls(**data)

    @classmethod
    def from_dict(
        cls, data: dict, base_config: Optional["StatisticsConfiguration"] = None
    ) -> "StatisticsConfiguration":
        """Create config from dictionary, optionally overriding base config.

        Args:
            data: Dictionary with configuration parameters.
            base_config: Optional base configuration to override.

        Returns:
            Configuration with validated parameters.
        """
        if base_config is None:
            return cls(**data)

        config_dict = base_config.model_dump(by_alias=True)

        def deep_merge(base: dict, override: dict) -> dict:
            result = base.copy()
            for key, value in override.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = deep_merge(result[key], value)
                else:
                    result[key] = value
            return result

        return cls(**deep_merge(config_dict, data))

    def override(self, **kwargs) -> "StatisticsConfiguration":
        """Create a new config with overridden parameters.

        Args:
            **kwargs: Parameters to override, nested fields separated by a
                double underscore, e.g. ``logging__level="DEBUG"``.

        Returns:
            New configuration with overrides applied.
        """
        override_dict: Dict[str, Any] = {}
        for key, value in kwargs.items():
            parts = key.split("__")
            current = override_dict
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = value

        return StatisticsConfiguration.from_dict(override_dict, base_config=self)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            path: Path where to save the configuration.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(mode="json", by_alias=True),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

    def setup_logging(self) -> None:
        """Configure the package logger from the logging settings.

        Sets up handlers for console and/or file output, replacing any
        handlers installed by a previous call.
        """
        if not self.logging.enabled:
            return

        logger = logging.getLogger(PACKAGE_LOGGER)
        logger.setLevel(getattr(logging, self.logging.level))
        logger.handlers.clear()

        formatter = logging.Formatter(self.logging.format)

        if self.logging.console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        if self.logging.log_file:
            log_path = Path(self.logging.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
