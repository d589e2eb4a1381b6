# Copyright 2024 SkyPilot Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Loading and unpacking of provider and function configuration."""
import datetime
import math
import os
import re
from typing import Annotated, Any, Dict, List, Mapping, Optional, Sequence, Type

import pydantic
import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from fnbundle import data_models
from fnbundle import exceptions

ENV_PACKAGE_ROOT = 'FNBUNDLE_PACKAGE_ROOT'

NonEmptyStr = Annotated[pydantic.StrictStr, Field(min_length=1)]

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(h|ms|us|µs|ns|m|s)')
_DURATION_UNITS = {
    'h': datetime.timedelta(hours=1),
    'm': datetime.timedelta(minutes=1),
    's': datetime.timedelta(seconds=1),
    'ms': datetime.timedelta(milliseconds=1),
    'us': datetime.timedelta(microseconds=1),
    'µs': datetime.timedelta(microseconds=1),
    'ns': datetime.timedelta(microseconds=1) / 1000,
}

_MEMORY_SIZE = re.compile(r'^(\d+)\s*([KMGT]i?B?|B)?$', re.IGNORECASE)
_MEMORY_UNITS = {
    'b': 1,
    'k': 1024,
    'm': 1024**2,
    'g': 1024**3,
    't': 1024**4,
}


class GCPConfig(BaseModel):
    """Provider settings needed to address a function on GCP.

    Attributes:
        project_id: The GCP project the functions are deployed to.
        location_id: The region of the functions, e.g. 'europe-west2'.
        storage_name: The bucket the function archives are uploaded to.
    """
    project_id: NonEmptyStr
    location_id: NonEmptyStr
    storage_name: NonEmptyStr

    model_config = ConfigDict(frozen=True, extra='ignore')

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> 'GCPConfig':
        return _validate(cls, raw, 'GCP provider configuration')


class FunctionEntry(BaseModel):
    """An item of the provider's `functions` list.

    Only the keys needed to look a function up are checked here; the rest
    of the section is validated by the function type.
    """
    name: NonEmptyStr
    type: NonEmptyStr
    enabled: bool = True

    model_config = ConfigDict(extra='allow')


class TriggerSettings(BaseModel):
    resource: NonEmptyStr
    event_type: Optional[pydantic.StrictStr] = None
    service: Optional[pydantic.StrictStr] = None

    model_config = ConfigDict(extra='ignore')


class FunctionSettings(BaseModel):
    """The settings of one function section, as written in the config file."""
    description: Optional[pydantic.StrictStr] = None
    entry_point: Optional[pydantic.StrictStr] = None
    trigger: TriggerSettings
    timeout: datetime.timedelta = datetime.timedelta(0)
    memory_size: int = 0
    service_account_email: Optional[pydantic.StrictStr] = None
    labels: Dict[pydantic.StrictStr, pydantic.StrictStr] = Field(
        default_factory=dict)
    max_instances: Annotated[pydantic.StrictInt, Field(ge=0)] = Field(
        default=0,
        validation_alias=pydantic.AliasChoices('maximum_instances',
                                               'max_instances'))
    vpc_connector: Optional[pydantic.StrictStr] = None

    # name, type and enabled belong to FunctionEntry.
    model_config = ConfigDict(extra='allow')

    @field_validator('timeout', mode='before')
    @classmethod
    def validate_timeout(cls, v: Any) -> datetime.timedelta:
        return _as_value_error(parse_duration, v)

    @field_validator('memory_size', mode='before')
    @classmethod
    def validate_memory_size(cls, v: Any) -> int:
        return _as_value_error(parse_memory_size, v)

    @field_validator('labels', 'max_instances', mode='before')
    @classmethod
    def none_as_unset(cls, v: Any, info: pydantic.ValidationInfo) -> Any:
        if v is None:
            return {} if info.field_name == 'labels' else 0
        return v


def _as_value_error(parse, value):
    # pydantic only collects ValueErrors into its ValidationError.
    try:
        return parse(value)
    except exceptions.ConfigurationError as e:
        raise ValueError(str(e)) from e


def _validate(model: Type[BaseModel], raw: Any, what: str) -> Any:
    try:
        return model.model_validate(raw)
    except pydantic.ValidationError as e:
        raise exceptions.ConfigurationError(
            f'Invalid {what}.\nError: {e}') from e


def load_config(path: str) -> Dict[str, Any]:
    """Reads a YAML configuration file.

    Raises:
        ConfigurationError: If the file cannot be read or parsed, or does not
            contain a mapping.
    """
    try:
        with open(os.path.expanduser(path), 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except OSError as e:
        raise exceptions.ConfigurationError(
            f'Failed to read configuration file {path}: {e}') from e
    except yaml.YAMLError as e:
        raise exceptions.ConfigurationError(
            f'Invalid YAML in configuration file {path}: {e}') from e

    if config is None:
        config = {}
    if not isinstance(config, dict):
        raise exceptions.ConfigurationError(
            f'Configuration file {path} must contain a mapping.')
    return config


def get_provider_config(config: Mapping[str, Any],
                        provider_name: str) -> Dict[str, Any]:
    """Returns the `provider.<provider_name>` section of a configuration."""
    providers = config.get('provider') or {}
    section = providers.get(provider_name) if isinstance(providers,
                                                         dict) else None
    if not isinstance(section, dict):
        raise exceptions.ConfigurationError(
            f'No configuration found for provider {provider_name!r}.')
    return section


def validate_function_entries(
        functions: Any) -> List[Dict[str, Any]]:
    """Checks that every configured function is a mapping with a name and a
    type, and returns the raw sections.

    Raises:
        ConfigurationError: If the list or one of its entries is malformed.
    """
    if functions is None:
        return []
    if not isinstance(functions, Sequence) or isinstance(functions, str):
        raise exceptions.ConfigurationError(
            f'The functions section must be a list, got '
            f'{type(functions).__name__}.')
    entries = []
    for index, raw in enumerate(functions):
        entry = _validate(FunctionEntry, raw, f'function entry #{index}')
        entries.append(dict(raw, enabled=entry.enabled))
    return entries


def parse_duration(value: Any) -> datetime.timedelta:
    """Parses a duration such as '30s', '1m30s' or a number of seconds."""
    if value is None:
        return datetime.timedelta(0)
    try:
        if isinstance(value, datetime.timedelta):
            duration = value
        elif isinstance(value, bool):
            raise exceptions.ConfigurationError(f'Invalid duration: {value!r}')
        elif isinstance(value, (int, float)):
            if not math.isfinite(value):
                raise exceptions.ConfigurationError(
                    f'Duration must be finite: {value!r}')
            duration = datetime.timedelta(seconds=value)
        elif isinstance(value, str):
            duration = _parse_duration_str(value.strip())
        else:
            raise exceptions.ConfigurationError(f'Invalid duration: {value!r}')
    except OverflowError as e:
        raise exceptions.ConfigurationError(
            f'Duration is too large: {value!r}') from e

    if duration < datetime.timedelta(0):
        raise exceptions.ConfigurationError(
            f'Duration must not be negative: {value!r}')
    return duration


def _parse_duration_str(value: str) -> datetime.timedelta:
    if value in ('', '0'):
        return datetime.timedelta(0)
    if value.startswith('-'):
        raise exceptions.ConfigurationError(
            f'Duration must not be negative: {value!r}')

    total = datetime.timedelta(0)
    pos = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(value):
        raise exceptions.ConfigurationError(f'Invalid duration: {value!r}')
    return total


def parse_memory_size(value: Any) -> int:
    """Parses a memory size into whole megabytes.

    Plain numbers are taken as megabytes. Strings may carry a unit, e.g.
    '256MB', '256MiB' or '1GB'; decimal and binary units are treated alike.
    Sizes that are not a whole number of megabytes are rejected.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        raise exceptions.ConfigurationError(f'Invalid memory size: {value!r}')
    if isinstance(value, int):
        if value < 0:
            raise exceptions.ConfigurationError(
                f'Memory size must not be negative: {value!r}')
        return value
    if not isinstance(value, str):
        raise exceptions.ConfigurationError(f'Invalid memory size: {value!r}')

    match = _MEMORY_SIZE.match(value.strip())
    if match is None:
        raise exceptions.ConfigurationError(f'Invalid memory size: {value!r}')
    amount, unit = match.groups()
    if unit is None:
        return int(amount)
    megabytes, rest = divmod(int(amount) * _MEMORY_UNITS[unit[0].lower()],
                             _MEMORY_UNITS['m'])
    if rest:
        raise exceptions.ConfigurationError(
            f'Memory size must be a whole number of megabytes: {value!r}')
    return megabytes


def function_config_from_dict(
    config_cls: Type[data_models.FunctionConfig],
    trigger_cls: Type[Any],
    raw: Mapping[str, Any],
) -> data_models.FunctionConfig:
    """Unpacks a raw function section into a typed function configuration.

    Args:
        config_cls: The configuration dataclass of the function kind.
        trigger_cls: The trigger dataclass of the function kind.
        raw: The function section of the configuration file.

    Raises:
        ConfigurationError: If a setting is missing or malformed.
    """
    name = raw.get('name') if isinstance(raw, Mapping) else None
    settings = _validate(FunctionSettings, raw,
                         f'configuration for function {name!r}')

    trigger = {'resource': settings.trigger.resource}
    if settings.trigger.event_type:
        trigger['event_type'] = settings.trigger.event_type
    # An explicit empty or null service leaves it out of the request.
    if 'service' in settings.trigger.model_fields_set:
        trigger['service'] = settings.trigger.service or ''

    kwargs: Dict[str, Any] = {
        'description': settings.description or '',
        'trigger': trigger_cls(**trigger),
        'timeout': settings.timeout,
        'memory_size': settings.memory_size,
        'service_account_email': settings.service_account_email or '',
        'labels': dict(settings.labels),
        'max_instances': settings.max_instances,
        'vpc_connector': settings.vpc_connector or '',
    }
    if settings.entry_point:
        kwargs['entry_point'] = settings.entry_point
    return config_cls(**kwargs)


def default_package_root() -> str:
    return os.environ.get(ENV_PACKAGE_ROOT, '.')
