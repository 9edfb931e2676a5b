"""
Configuration for backup-rotator.

Two layers live here:

- RotatorConfig: the immutable rotation settings (targets, hooks, lock path,
  backup tool) read from an INI file and handed to every component.
- Config classes: Flask-side settings for the status server and scheduler.
"""

import os
import shlex
import socket
import configparser
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .exceptions import ConfigError


CONFIG_SECTION = 'rotator'
DEFAULT_CONFIG_PATHS = ('/etc/backup-rotator.conf', 'backup-rotator.conf')
DEFAULT_LOCKFILE = '/var/run/backup-rotator.lock'
DEFAULT_BACKUP_TOOL = 'borg'
DEFAULT_SCHEDULE = '0 3 * * *'


def default_hostname() -> str:
    """Return the local short hostname."""
    return socket.gethostname().split('.')[0]


@dataclass(frozen=True)
class RotatorConfig:
    """
    Immutable rotation settings.

    Constructed once at startup and passed into each component. Validation
    happens in __post_init__ and reports every problem at once.
    """

    # Ordered list of absolute paths to back up
    backup_targets: Tuple[str, ...]

    hostname: str = field(default_factory=default_hostname)
    pre_backup_script: Optional[str] = None
    post_backup_script: Optional[str] = None
    lockfile: str = DEFAULT_LOCKFILE
    backup_tool_path: str = DEFAULT_BACKUP_TOOL
    extra_backup_options: Tuple[str, ...] = ()
    verbose: int = 0

    # Repository passed to the backup tool; None defers to BORG_REPO
    repository: Optional[str] = None

    syslog: bool = False
    logfile: Optional[str] = None

    # Crontab expression used by the scheduler in serve mode
    schedule: str = DEFAULT_SCHEDULE

    def __post_init__(self) -> None:
        # rotator.backup imports this module
        from .backup.naming import sanitize_target

        errors: List[str] = []

        if not self.backup_targets:
            errors.append("backuptargets is required and must list at least one path")
        seen_names = {}
        for target in self.backup_targets:
            if not target.startswith('/'):
                errors.append(f"Backup target must be an absolute path: {target}")
            elif not target.strip('/'):
                errors.append("The filesystem root cannot be a backup target")
            else:
                name = sanitize_target(target)
                if name in seen_names:
                    errors.append(
                        f"Backup targets {seen_names[name]} and {target} "
                        f"both map to archive target name {name!r}"
                    )
                else:
                    seen_names[name] = target

        if not self.hostname:
            errors.append("hostname must not be empty")
        elif '/' in self.hostname or any(c.isspace() for c in self.hostname):
            errors.append(f"Invalid hostname: {self.hostname!r}")

        if self.verbose not in (0, 1, 2):
            errors.append(f"verbose must be 0, 1 or 2, got {self.verbose}")

        if not self.lockfile:
            errors.append("lockfile must not be empty")

        if not self.backup_tool_path:
            errors.append("backup-tool-path must not be empty")

        if len(self.schedule.split()) != 5:
            errors.append(f"Invalid schedule (expected 5 crontab fields): {self.schedule!r}")

        if errors:
            raise ConfigError("Configuration validation failed", details={'errors': errors})


def _parse_bool(value: str, key: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ('1', 'true', 'yes', 'on'):
        return True
    if lowered in ('0', 'false', 'no', 'off', ''):
        return False
    raise ConfigError(f"Invalid boolean for {key}: {value!r}")


def _parse_int(value: str, key: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ConfigError(f"Invalid integer for {key}: {value!r}")


def find_config_file(path: Optional[str] = None) -> str:
    """
    Locate the configuration file.

    Order: explicit path, $ROTATOR_CONFIG, then DEFAULT_CONFIG_PATHS.

    Raises:
        ConfigError: If no configuration file exists
    """
    if path:
        if not os.path.isfile(path):
            raise ConfigError(f"Config file not found: {path}")
        return path

    env_path = os.environ.get('ROTATOR_CONFIG')
    if env_path:
        if not os.path.isfile(env_path):
            raise ConfigError(f"Config file from ROTATOR_CONFIG not found: {env_path}")
        return env_path

    for candidate in DEFAULT_CONFIG_PATHS:
        if os.path.isfile(candidate):
            return candidate

    raise ConfigError(
        "No configuration file found. "
        f"Pass --config, set ROTATOR_CONFIG, or create one of: {', '.join(DEFAULT_CONFIG_PATHS)}"
    )


def read_config_file(config_path: str) -> dict:
    """
    Read the [rotator] section of an INI file into a plain dict.

    Raises:
        ConfigError: If the file cannot be parsed or lacks the section
    """
    parser = configparser.ConfigParser(interpolation=None)
    try:
        read_files = parser.read(config_path)
    except configparser.Error as e:
        raise ConfigError(f"Config file {config_path} could not be parsed: {e}")
    if not read_files:
        raise ConfigError(f"Config file {config_path} could not be read")
    if CONFIG_SECTION not in parser:
        raise ConfigError(f"Config file {config_path} is missing the [{CONFIG_SECTION}] section")
    return dict(parser[CONFIG_SECTION].items())


def build_config(values: dict) -> RotatorConfig:
    """
    Build a RotatorConfig from raw string values.

    Environment variables ROTATOR_HOSTNAME, ROTATOR_VERBOSE, ROTATOR_LOCKFILE
    and ROTATOR_REPOSITORY override the corresponding file values.
    """
    values = dict(values)
    for key, env_name in (('hostname', 'ROTATOR_HOSTNAME'),
                          ('verbose', 'ROTATOR_VERBOSE'),
                          ('lockfile', 'ROTATOR_LOCKFILE'),
                          ('repository', 'ROTATOR_REPOSITORY')):
        if os.environ.get(env_name):
            values[key] = os.environ[env_name]

    kwargs = {
        'backup_targets': tuple(values.get('backuptargets', '').split()),
    }

    if values.get('hostname'):
        kwargs['hostname'] = values['hostname'].strip()
    if values.get('prebackupscript'):
        kwargs['pre_backup_script'] = values['prebackupscript'].strip()
    if values.get('postbackupscript'):
        kwargs['post_backup_script'] = values['postbackupscript'].strip()
    if values.get('lockfile'):
        kwargs['lockfile'] = values['lockfile'].strip()
    if values.get('backup-tool-path'):
        kwargs['backup_tool_path'] = values['backup-tool-path'].strip()
    if values.get('extra-backup-options'):
        kwargs['extra_backup_options'] = tuple(shlex.split(values['extra-backup-options']))
    if values.get('verbose'):
        kwargs['verbose'] = _parse_int(values['verbose'], 'verbose')
    if values.get('repository'):
        kwargs['repository'] = values['repository'].strip()
    if 'syslog' in values:
        kwargs['syslog'] = _parse_bool(values['syslog'], 'syslog')
    if values.get('logfile'):
        kwargs['logfile'] = values['logfile'].strip()
    if values.get('schedule'):
        kwargs['schedule'] = values['schedule'].strip()

    return RotatorConfig(**kwargs)


def load_config(path: Optional[str] = None) -> RotatorConfig:
    """
    Locate, read and validate the rotation configuration.

    Raises:
        ConfigError: If the file is missing or any value is invalid
    """
    config_path = find_config_file(path)
    return build_config(read_config_file(config_path))


class Config:
    """Base configuration for the status server"""

    # Rotation config file; None means the normal lookup order
    ROTATOR_CONFIG_FILE = os.environ.get('ROTATOR_CONFIG')

    # Scheduler
    SCHEDULER_ENABLED = True
    SCHEDULER_TIMEZONE = 'UTC'


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True

    BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    ROTATOR_CONFIG_FILE = os.environ.get('ROTATOR_CONFIG') or os.path.join(BASE_DIR, 'backup-rotator.conf')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration - no background scheduler"""
    TESTING = True
    DEBUG = False
    SCHEDULER_ENABLED = False


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': ProductionConfig
}
