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
"""Function types deployable to Google Cloud Functions."""
from typing import Any, Mapping

from fnbundle import config as config_lib
from fnbundle import data_models
from fnbundle import registry
from fnbundle.backends import abstract_backend

PROVIDER_NAME = 'gcp'


class PubSubFunction(abstract_backend.InstallableFunction):
    """Consumes messages published to a Pub/Sub topic."""

    TYPE_NAME = 'pubsub'

    def __init__(self, function_config: data_models.PubSubFunctionConfig):
        self._config = function_config

    @classmethod
    def from_config(cls, raw: Mapping[str, Any]) -> 'PubSubFunction':
        return cls(
            config_lib.function_config_from_dict(
                data_models.PubSubFunctionConfig, data_models.PubSubTrigger,
                raw))

    def name(self) -> str:
        return self.TYPE_NAME

    def config(self) -> data_models.PubSubFunctionConfig:
        return self._config


class StorageFunction(abstract_backend.InstallableFunction):
    """Consumes object change notifications from a Cloud Storage bucket."""

    TYPE_NAME = 'storage'

    def __init__(self, function_config: data_models.StorageFunctionConfig):
        self._config = function_config

    @classmethod
    def from_config(cls, raw: Mapping[str, Any]) -> 'StorageFunction':
        return cls(
            config_lib.function_config_from_dict(
                data_models.StorageFunctionConfig, data_models.StorageTrigger,
                raw))

    def name(self) -> str:
        return self.TYPE_NAME

    def config(self) -> data_models.StorageFunctionConfig:
        return self._config


def register_functions(function_registry: registry.FunctionRegistry) -> None:
    """Registers the GCP function types, Pub/Sub first."""
    for cls in (PubSubFunction, StorageFunction):
        function_registry.register(PROVIDER_NAME, cls.TYPE_NAME,
                                   cls.from_config)


register_functions(registry.REGISTRY)
