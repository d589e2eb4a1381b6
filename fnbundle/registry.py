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
"""Registry of function types and the functions configured for a provider."""
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from fnbundle import config as config_lib
from fnbundle import exceptions
from fnbundle import fn_logging

logger = fn_logging.init_logger(__name__)

# Creates a function instance from its raw configuration section.
FunctionFactory = Callable[[Mapping[str, Any]], Any]


class FunctionRegistry:
    """Maps (provider, function type) pairs to function factories."""

    def __init__(self) -> None:
        self._factories: Dict[str, Dict[str, FunctionFactory]] = {}

    def register(self, provider_name: str, type_name: str,
                 factory: FunctionFactory) -> None:
        functions = self._factories.setdefault(provider_name, {})
        if type_name in functions:
            raise ValueError(f'Function type {type_name!r} is already '
                             f'registered for provider {provider_name!r}.')
        functions[type_name] = factory

    def get(self, provider_name: str, type_name: str) -> FunctionFactory:
        factory = self._factories.get(provider_name, {}).get(type_name)
        if factory is None:
            raise exceptions.FunctionNotFoundError(
                f'Unknown function type {type_name!r} for provider '
                f'{provider_name!r}. Available types: '
                f'{", ".join(self.list_functions(provider_name)) or "none"}.')
        return factory

    def list_functions(self, provider_name: str) -> List[str]:
        """Returns the registered type names, in registration order."""
        return list(self._factories.get(provider_name, {}))


REGISTRY = FunctionRegistry()


class Provider:
    """The functions configured for one cloud provider.

    Args:
        name: The provider name, e.g. 'gcp'.
        functions: The `functions` section of the provider configuration.
            Each entry carries at least a `name` and a `type`.
        function_registry: Where function types are looked up.

    Raises:
        ConfigurationError: If an entry of `functions` is malformed.
    """

    def __init__(self,
                 name: str,
                 functions: Optional[Sequence[Mapping[str, Any]]] = None,
                 function_registry: Optional[FunctionRegistry] = None) -> None:
        self.name = name
        self.functions = config_lib.validate_function_entries(functions)
        self.function_registry = function_registry or REGISTRY

    def find_function_by_name(self, name: str) -> Any:
        """Creates the enabled function configured under `name`.

        Raises:
            FunctionNotFoundError: If no enabled function has this name, or
                its type is not registered for the provider.
        """
        for raw in self.functions:
            if raw.get('name') != name:
                continue
            if not raw.get('enabled', True):
                logger.debug(f'Function {name!r} is disabled, skipping.')
                continue
            factory = self.function_registry.get(self.name, raw.get('type'))
            return factory(raw)
        raise exceptions.FunctionNotFoundError(
            f'Function {name!r} does not exist for provider {self.name!r}.')
