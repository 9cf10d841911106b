import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

import yaml
from pydantic import BaseModel, create_model

ENV_OVERRIDE_PREFIX = 'MARKETPLACE__'
VARIABLE_PATTERN = re.compile(r'\$\{([^}]+)\}')


def load_yaml(file_path: str) -> dict:
    config_path = Path(file_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file '{file_path}' does not exist.")

    with config_path.open('r') as f:
        config_data = yaml.safe_load(f)

    if not isinstance(config_data, dict):
        raise ValueError("Configuration file must contain a YAML dictionary at the root.")

    return config_data


def apply_env_overrides(config: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """
    Override leaf values from environment variables.

    `MARKETPLACE__Offers__CASCADE_RETRY_ATTEMPTS=5` replaces `Offers.CASCADE_RETRY_ATTEMPTS`.
    Values are parsed as YAML scalars so numbers and booleans keep their type. Keys that
    do not already exist in the file are ignored.

    :param config: The configuration dictionary, modified in place.
    :param environ: Environment mapping, `os.environ` by default.
    :return: The overridden configuration dictionary.
    """
    environ = os.environ if environ is None else environ
    for name, raw_value in environ.items():
        if not name.startswith(ENV_OVERRIDE_PREFIX):
            continue
        *sections, key = name[len(ENV_OVERRIDE_PREFIX):].split('__')
        target = config
        for section in sections:
            target = target.get(section) if isinstance(target, dict) else None
        if isinstance(target, dict) and key in target and not isinstance(target[key], (dict, list)):
            target[key] = yaml.safe_load(raw_value)
    return config


def _lookup(root: Dict[str, Any], dotted_name: str) -> Any:
    value = root
    for key in dotted_name.split('.'):
        if not isinstance(value, dict) or key not in value:
            raise ValueError(f"Variable '{dotted_name}' not found in configuration.")
        value = value[key]
    return value


def interpolate_config(config: Dict[str, Any], root: Optional[Dict[str, Any]] = None,
                       resolving: Optional[set] = None) -> Dict[str, Any]:
    """
    Replace `${Section.KEY}` references with the referenced values.

    References are always resolved from the root of the configuration, so any section
    can refer to any other one.

    :param config: The (sub) configuration to interpolate, modified in place.
    :param root: The complete configuration; defaults to `config`.
    :param resolving: Names currently being resolved, to detect circular references.
    :return: The interpolated configuration dictionary.
    """
    root = config if root is None else root
    resolving = set() if resolving is None else resolving

    def resolve(value: str) -> str:
        for name in VARIABLE_PATTERN.findall(value):
            if name in resolving:
                raise ValueError(f"Circular reference detected for variable '{name}'.")
            referenced = _lookup(root, name)
            if isinstance(referenced, str) and VARIABLE_PATTERN.search(referenced):
                resolving.add(name)
                referenced = resolve(referenced)
                resolving.remove(name)
            if not isinstance(referenced, (str, int, float)):
                raise ValueError(f"Variable '{name}' is of unsupported type {type(referenced)} for interpolation.")
            value = value.replace(f"${{{name}}}", str(referenced))
        return value

    for key, value in config.items():
        if isinstance(value, str):
            config[key] = resolve(value)
        elif isinstance(value, dict):
            interpolate_config(value, root, resolving)
        elif isinstance(value, list):
            config[key] = [
                resolve(item) if isinstance(item, str)
                else interpolate_config(item, root, resolving) if isinstance(item, dict)
                else item
                for item in value
            ]
    return config


def generate_pydantic_model(model_name: str, data: Dict[str, Any]) -> Type[BaseModel]:
    """
    Generate a Pydantic model mirroring the shape of a configuration dictionary.

    Sections become nested models, lists are typed after their first element and
    every field is required with the type found in the file.
    """
    fields = {}
    for key, value in data.items():
        field_name = key.replace('-', '_').replace(' ', '_')
        if isinstance(value, dict):
            field_type = generate_pydantic_model(f"{model_name}_{key.capitalize()}", value)
        elif isinstance(value, list):
            field_type = List[type(value[0])] if value else List[Any]
        else:
            field_type = type(value)
        fields[field_name] = (field_type, ...)
    return create_model(model_name, **fields)


def generate_config_model(config_data: dict) -> Type[BaseModel]:
    return generate_pydantic_model("AppConfig", config_data)


def load_settings(file_path: str, environ: Optional[Dict[str, str]] = None) -> BaseModel:
    config_data = apply_env_overrides(load_yaml(file_path), environ)
    interpolated_config = interpolate_config(config_data)
    AppConfigModel = generate_config_model(interpolated_config)
    return AppConfigModel(**interpolated_config)


CONFIG_FILE_PATH = os.getenv('CONFIG_FILE_PATH', str(Path(__file__).parent / 'config.yaml'))

settings = load_settings(CONFIG_FILE_PATH)
