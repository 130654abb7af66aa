"""
Process-level settings read from the environment (and an optional .env
file in the working directory).
"""
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError

from ..exceptions import ConfigurationError

DEFAULT_INSTANCE_FILE = os.path.join("..", "instance.json")
DEFAULT_STOP_TIMEOUT = 30


class RuntimeSettings(BaseModel):
    """
    Where the deployer finds its inputs and writes its logs.
    """
    instance_file: str = DEFAULT_INSTANCE_FILE
    log_dir: str = "."
    stop_timeout: int = DEFAULT_STOP_TIMEOUT
    workload_pidfile: str = ""

    @classmethod
    def from_env(cls,
                 environ: Optional[Mapping[str, str]] = None,
                 dotenv_path: Optional[str] = None) -> "RuntimeSettings":
        """
        Builds settings from environment variables.

        :param environ: Mapping to read instead of os.environ.
        :param dotenv_path: .env file to load into os.environ first
            (defaults to ./.env when reading os.environ).
        :return: The runtime settings.
        :raises ConfigurationError: If a variable holds an invalid value.
        """
        if environ is None:
            load_dotenv(dotenv_path or os.path.join(os.getcwd(), ".env"))
            environ = os.environ

        values = {
            "instance_file": environ.get("IMGDEPLOY_INSTANCE_FILE"),
            "log_dir": environ.get("IMGDEPLOY_LOG_DIR"),
            "stop_timeout": environ.get("IMGDEPLOY_STOP_TIMEOUT"),
            "workload_pidfile": environ.get("APPRENDA_WORKLOAD_PIDFILE"),
        }
        try:
            return cls(**{k: v for k, v in values.items() if v})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid deployer environment: {e}") from e
