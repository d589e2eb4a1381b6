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
"""User-facing APIs for building function artifacts."""
from typing import Any, Dict, List, Mapping, Tuple

from fnbundle import config as config_lib
from fnbundle import data_models
from fnbundle import registry
from fnbundle.backends import gcp_functions  # pylint: disable=unused-import
from fnbundle.backends import registry as backend_registry

get_template_builder = backend_registry.get_template_builder


def build(name: str, *, provider: registry.Provider,
          config: Mapping[str, Any]) -> data_models.FunctionData:
    """Packages a function and renders its deployment request.

    The template builder is selected from the provider's name.

    Args:
        name: The name of the configured function.
        provider: The provider the function is configured for.
        config: The provider configuration section.

    Returns:
        The zipped function sources and the request body to POST.
    """
    builder = get_template_builder(provider.name, config, provider)
    return builder.build(name)


def render(name: str, *, provider: registry.Provider,
           config: Mapping[str, Any]) -> str:
    """Returns the printable deployment request of a function.

    Args:
        name: The name of the configured function.
        provider: The provider the function is configured for.
        config: The provider configuration section.
    """
    builder = get_template_builder(provider.name, config, provider)
    return builder.raw_template(name)


def list_archive_resources(
        provider_name: str = 'gcp') -> List[data_models.FileResource]:
    """Lists every file bundled by the provider's function types."""
    return backend_registry.get_zip_resources(provider_name)


def load_provider(path: str,
                  provider_name: str = 'gcp'
                 ) -> Tuple[registry.Provider, Dict[str, Any]]:
    """Loads a YAML configuration file.

    Returns:
        The provider holding the configured functions, and the provider
        configuration section to build a template builder with.
    """
    provider_config = config_lib.get_provider_config(
        config_lib.load_config(path), provider_name)
    provider = registry.Provider(provider_name,
                                 provider_config.get('functions'))
    return provider, provider_config
