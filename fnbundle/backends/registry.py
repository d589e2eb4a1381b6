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
"""Registry for template builders."""
import importlib
from typing import Any, Dict, List, Mapping, Tuple

from fnbundle import data_models
from fnbundle import registry as function_registry
from fnbundle.backends import abstract_backend

_REGISTRY: Dict[str, str] = {
    'gcp': 'fnbundle.backends.gcp_backend.GCPTemplateBuilder',
}


def _import_backend(provider_name: str) -> Tuple[Any, Any]:
    class_path = _REGISTRY.get(provider_name)
    if class_path is None:
        raise ValueError(
            f'Function deployment is not supported for {provider_name}.')
    module_path, class_name = class_path.rsplit('.', 1)
    module = importlib.import_module(module_path)
    return module, getattr(module, class_name)


def get_template_builder(
    provider_name: str,
    cfg: Mapping[str, Any],
    provider: function_registry.Provider,
) -> abstract_backend.TemplateBuilder:
    """Get a template builder for a given provider."""
    _, cls = _import_backend(provider_name)
    return cls(cfg, provider)


def get_zip_resources(provider_name: str) -> List[data_models.FileResource]:
    """Lists every file bundled by a provider's function types."""
    module, _ = _import_backend(provider_name)
    return module.zip_resources()
