"""Configuration loader for agent-gcpcredentials."""
import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .filters import create_filter_expression
from .models import CredentialsConfiguration, EndpointOverride, Filter, RoleIdentity
from .preferences import CONFIG_PATH_KEY, get_preference

logger = logging.getLogger(__name__)

PROJECT_ENV_VAR = "GCP_PROJECT"


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def default_config_path() -> Path:
    return Path.home() / ".config" / "agent-gcpcredentials" / "config.yml"


def _get_config_path() -> str:
    """
    Get config file path.

    Priority order:
    1. User preference (stored in ~/.config/agent-gcpcredentials/preferences.json)
    2. Default location: ~/.config/agent-gcpcredentials/config.yml

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    config_path_pref = get_preference(CONFIG_PATH_KEY)
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.info(f"Using config from preference: {config_path}")
            return str(config_path)
        logger.warning(f"Config path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    raise FileNotFoundError(
        "Configuration file not found. Please set up your config file using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   gcpcreds config set-path /path/to/your/config.yml\n\n"
        "3. Run interactive setup:\n"
        "   gcpcreds config init\n"
    )


def _validate_authentication(config: Dict[str, Any], config_path: str) -> None:
    auth = config.get('authentication')
    if auth is None:
        logger.debug("No 'authentication' section, using application default credentials")
        return

    if not isinstance(auth, dict):
        raise ConfigError(f"'authentication' in {config_path} must be a mapping")

    if 'type' not in auth:
        raise ConfigError("Missing 'authentication.type' in config")

    if auth['type'] != 'service_account':
        raise ConfigError(
            f"Unsupported authentication type: {auth['type']}\n"
            f"Only 'service_account' is supported."
        )

    if 'service_account_path' not in auth:
        raise ConfigError(
            "Missing 'authentication.service_account_path' in config\n"
            "Please specify the absolute path to your service account JSON file."
        )

    service_account_path = auth['service_account_path']

    if not os.path.exists(service_account_path):
        raise ConfigError(
            f"Service account file not found at: {service_account_path}\n"
            f"Please ensure the file exists or update the path in {config_path}"
        )

    if not os.path.isfile(service_account_path):
        raise ConfigError(f"Service account path is not a file: {service_account_path}")


def _validate_gcp(config: Dict[str, Any], config_path: str) -> None:
    gcp = config.get('gcp')
    if not isinstance(gcp, dict):
        raise ConfigError(
            f"Missing 'gcp' section in config at {config_path}\n"
            f"Required format:\n"
            f"gcp:\n"
            f"  project_id: your-project-id"
        )

    if 'project_id' not in gcp and not os.getenv(PROJECT_ENV_VAR):
        raise ConfigError(f"Missing 'gcp.project_id' in config (or set {PROJECT_ENV_VAR})")


def _parse_filters(config: Dict[str, Any]) -> List[Filter]:
    list_secrets = config.get('list_secrets') or {}
    if not isinstance(list_secrets, dict):
        raise ConfigError("'list_secrets' must be a mapping")

    raw_filters = list_secrets.get('filters') or []
    if not isinstance(raw_filters, list):
        raise ConfigError("'list_secrets.filters' must be a list")

    filters = []
    for i, raw in enumerate(raw_filters):
        if not isinstance(raw, dict) or 'key' not in raw:
            raise ConfigError(f"Missing 'key' in list_secrets.filters[{i}]")
        values = raw.get('values') or []
        if isinstance(values, str):
            values = [values]
        if not isinstance(values, list):
            raise ConfigError(f"'list_secrets.filters[{i}].values' must be a list")
        filters.append(Filter(key=str(raw['key']), values=[str(v) for v in values]))

    try:
        create_filter_expression(filters)
    except ValueError as e:
        raise ConfigError(f"Invalid list_secrets filters: {e}")

    return filters


def _parse_endpoint(config: Dict[str, Any]) -> Optional[EndpointOverride]:
    ec = config.get('endpoint_configuration')
    if not ec:
        return None
    if not isinstance(ec, dict):
        raise ConfigError("'endpoint_configuration' must be a mapping")

    endpoint = EndpointOverride.create(ec.get('service_endpoint'), ec.get('signing_region'))
    if endpoint is None:
        logger.warning(
            "Ignoring endpoint_configuration: both 'service_endpoint' and 'signing_region' are required"
        )
    return endpoint


def _parse_roles(config: Dict[str, Any]) -> List[RoleIdentity]:
    raw_roles = config.get('roles') or []
    if not isinstance(raw_roles, list):
        raise ConfigError("'roles' must be a list of service account identities")

    roles = []
    for raw in raw_roles:
        try:
            roles.append(RoleIdentity.parse(raw))
        except ValueError as e:
            raise ConfigError(str(e))
    return roles


def load_config() -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Returns:
        Dict containing configuration with keys:
        - authentication (optional): dict with type and service_account_path
        - gcp: dict with project_id
        - endpoint_configuration, list_secrets, roles, cache (optional)

    Raises:
        ConfigError: If config file is invalid or service account file doesn't exist
        FileNotFoundError: If no config file can be located
    """
    config_path = _get_config_path()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    _validate_authentication(config, config_path)
    _validate_gcp(config, config_path)

    logger.info(f"Configuration loaded successfully from {config_path}")
    return config


def parse_configuration(config: Dict[str, Any]) -> CredentialsConfiguration:
    """
    Turn a validated config dict into a CredentialsConfiguration.

    The GCP_PROJECT environment variable overrides gcp.project_id.
    """
    project_id = os.getenv(PROJECT_ENV_VAR) or config['gcp']['project_id']
    logger.debug(f"Using project ID: {project_id}")

    auth = config.get('authentication') or {}
    return CredentialsConfiguration(
        project_id=str(project_id),
        endpoint=_parse_endpoint(config),
        filters=_parse_filters(config),
        roles=_parse_roles(config),
        cache=bool(config.get('cache', True)),
        service_account_path=auth.get('service_account_path'),
    )


def load_configuration() -> CredentialsConfiguration:
    return parse_configuration(load_config())
