"""
mountserve Configuration Module
Supports loading from:
1. INI config file (/etc/mountserve/mountserve.conf)
2. Environment variables (override config file)
3. Default values (fallback)
"""

import os
import logging
from configparser import ConfigParser, Error as ConfigParserError
from typing import Dict, Any, List, Mapping, Optional

from mountserve.exceptions import ConfigurationException

logger = logging.getLogger(__name__)


class ServeConfig:
    """mountserve Configuration Manager"""

    # Default configuration file path
    CONFIG_FILE = '/etc/mountserve/mountserve.conf'
    SECTION = 'mountserve'
    ENV_PREFIX = 'MOUNTSERVE_'

    # Default values
    DEFAULT_STORAGE = None
    DEFAULT_LOG_LEVEL = 'INFO'
    DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    DEFAULT_LOG_JSON = False
    DEFAULT_ENABLED_BACKENDS = 'fs,s3,sshfs'
    DEFAULT_READ_CHUNK_SIZE = 64 * 1024
    # Longer than the sshfs ConnectTimeout so a slow connect is not cut short
    DEFAULT_MOUNT_STARTUP_TIMEOUT = 15.0
    DEFAULT_UNMOUNT_TIMEOUT = 10.0
    DEFAULT_SSHFS_BIN = 'sshfs'
    DEFAULT_FUSERMOUNT_BIN = 'fusermount'
    DEFAULT_SHELL_BIN = 'sh'
    DEFAULT_S3_ENDPOINT_URL = None
    DEFAULT_S3_REGION = None

    KNOWN_BACKENDS = ('fs', 's3', 'sshfs')

    def __init__(self, storage: Optional[str] = DEFAULT_STORAGE,
                 log_level: str = DEFAULT_LOG_LEVEL,
                 log_format: str = DEFAULT_LOG_FORMAT,
                 log_json: bool = DEFAULT_LOG_JSON,
                 enabled_backends: Optional[List[str]] = None,
                 read_chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
                 mount_startup_timeout: float = DEFAULT_MOUNT_STARTUP_TIMEOUT,
                 unmount_timeout: float = DEFAULT_UNMOUNT_TIMEOUT,
                 sshfs_bin: str = DEFAULT_SSHFS_BIN,
                 fusermount_bin: str = DEFAULT_FUSERMOUNT_BIN,
                 shell_bin: str = DEFAULT_SHELL_BIN,
                 s3_endpoint_url: Optional[str] = DEFAULT_S3_ENDPOINT_URL,
                 s3_region: Optional[str] = DEFAULT_S3_REGION,
                 environ: Optional[Mapping[str, str]] = None):
        self.storage = storage
        self.log_level = log_level
        self.log_format = log_format
        self.log_json = log_json
        self.enabled_backends = (
            list(enabled_backends) if enabled_backends is not None
            else self._split_list(self.DEFAULT_ENABLED_BACKENDS)
        )
        self.read_chunk_size = read_chunk_size
        self.mount_startup_timeout = mount_startup_timeout
        self.unmount_timeout = unmount_timeout
        self.sshfs_bin = sshfs_bin
        self.fusermount_bin = fusermount_bin
        self.shell_bin = shell_bin
        self.s3_endpoint_url = s3_endpoint_url
        self.s3_region = s3_region
        # Environment the remote mount settings are read from
        self.environ = os.environ if environ is None else environ

    @classmethod
    def load(cls, config_file: Optional[str] = None,
             environ: Optional[Mapping[str, str]] = None) -> 'ServeConfig':
        """
        Load configuration from file and environment variables.

        Args:
            config_file: Path to config file (optional)
            environ: Environment mapping (defaults to os.environ)

        Returns:
            ServeConfig instance
        """
        environ = os.environ if environ is None else environ
        if config_file is None:
            config_file = environ.get(f'{cls.ENV_PREFIX}CONFIG_FILE', cls.CONFIG_FILE)

        logger.debug(f"Loading config from: {config_file}")
        config_data = cls._load_ini_file(config_file)

        def get(key: str, default: Any) -> Any:
            # Priority: env var > config file > default
            return environ.get(f'{cls.ENV_PREFIX}{key.upper()}', config_data.get(key, default))

        try:
            config = cls(
                storage=get('storage', cls.DEFAULT_STORAGE),
                log_level=get('log_level', cls.DEFAULT_LOG_LEVEL),
                log_format=get('log_format', cls.DEFAULT_LOG_FORMAT),
                log_json=cls._to_bool(get('log_json', cls.DEFAULT_LOG_JSON)),
                enabled_backends=cls._split_list(get('enabled_backends', cls.DEFAULT_ENABLED_BACKENDS)),
                read_chunk_size=int(get('read_chunk_size', cls.DEFAULT_READ_CHUNK_SIZE)),
                mount_startup_timeout=float(get('mount_startup_timeout', cls.DEFAULT_MOUNT_STARTUP_TIMEOUT)),
                unmount_timeout=float(get('unmount_timeout', cls.DEFAULT_UNMOUNT_TIMEOUT)),
                sshfs_bin=get('sshfs_bin', cls.DEFAULT_SSHFS_BIN),
                fusermount_bin=get('fusermount_bin', cls.DEFAULT_FUSERMOUNT_BIN),
                shell_bin=get('shell_bin', cls.DEFAULT_SHELL_BIN),
                s3_endpoint_url=get('s3_endpoint_url', cls.DEFAULT_S3_ENDPOINT_URL),
                s3_region=get('s3_region', cls.DEFAULT_S3_REGION),
                environ=environ,
            )
        except ValueError as e:
            raise ConfigurationException(f"Invalid configuration value: {e}") from e

        logger.debug(f"Configuration loaded: {config.as_dict()}")
        return config

    @classmethod
    def _load_ini_file(cls, config_file: str) -> Dict[str, Any]:
        """
        Load configuration from INI file.

        Expected format:
        [mountserve]
        storage = sshfs:///srv/www
        log_level = INFO
        enabled_backends = fs,sshfs
        """
        config_data = {}

        if not os.path.exists(config_file):
            logger.warning(f"Config file not found: {config_file}, using defaults")
            return config_data

        try:
            parser = ConfigParser(interpolation=None)
            parser.read(config_file)

            for section in [cls.SECTION, 'DEFAULT']:
                if parser.has_section(section) or section == 'DEFAULT':
                    for key, value in parser.items(section):
                        if key not in config_data:
                            config_data[key] = value

            logger.info(f"Loaded {len(config_data)} config parameters from {config_file}")

        except ConfigParserError as e:
            raise ConfigurationException(f"Failed to load config file {config_file}: {e}") from e

        return config_data

    @staticmethod
    def _split_list(value: Any) -> List[str]:
        if isinstance(value, (list, tuple)):
            return [str(v).strip() for v in value if str(v).strip()]
        return [v.strip() for v in str(value or '').split(',') if v.strip()]

    @staticmethod
    def _to_bool(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ('1', 'true', 'yes', 'on')

    def validate(self):
        """
        Validate configuration.

        Raises:
            ConfigurationException if configuration is invalid
        """
        if not self.storage:
            raise ConfigurationException(
                f"A storage location is required ({self.ENV_PREFIX}STORAGE), "
                f"e.g. fs://<path>, s3://<bucket> or sshfs://<mountpoint>"
            )

        unknown = [b for b in self.enabled_backends if b not in self.KNOWN_BACKENDS]
        if unknown:
            raise ConfigurationException(f"Unknown storage backends enabled: {', '.join(unknown)}")

        if self.read_chunk_size <= 0:
            raise ConfigurationException("read_chunk_size must be positive")

        if self.mount_startup_timeout < 0 or self.unmount_timeout <= 0:
            raise ConfigurationException("Mount timeouts must be positive")

        logger.debug("Configuration validated successfully")

    def as_dict(self) -> Dict[str, Any]:
        """Configuration as a dictionary, safe for logging."""
        return {
            'storage': self.storage,
            'log_level': self.log_level,
            'log_json': self.log_json,
            'enabled_backends': self.enabled_backends,
            'read_chunk_size': self.read_chunk_size,
            'mount_startup_timeout': self.mount_startup_timeout,
            'unmount_timeout': self.unmount_timeout,
            'sshfs_bin': self.sshfs_bin,
            'fusermount_bin': self.fusermount_bin,
            'shell_bin': self.shell_bin,
            's3_endpoint_url': self._mask_password(self.s3_endpoint_url),
            's3_region': self.s3_region,
        }

    @staticmethod
    def _mask_password(url: Optional[str]) -> Optional[str]:
        """Mask password in URL for logging."""
        if url and '@' in url and '://' in url:
            protocol, rest = url.split('://', 1)
            if '@' in rest:
                auth, host = rest.rsplit('@', 1)
                if ':' in auth:
                    user, _ = auth.split(':', 1)
                    return f"{protocol}://{user}:***@{host}"
        return url
