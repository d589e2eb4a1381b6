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
"""Google Cloud Platform (GCP) template builder for Cloud Functions."""
import datetime
import json
import os
from typing import Any, Dict, List, Mapping, Optional

# pylint: disable=import-error
from google.cloud import functions_v1

from fnbundle import config as config_lib
from fnbundle import data_models
from fnbundle import exceptions
from fnbundle import fn_logging
from fnbundle import registry
from fnbundle import utils
from fnbundle.backends import abstract_backend
from fnbundle.backends import gcp_functions

logger = fn_logging.init_logger(__name__)

# Python 3.11, the language the bundled function sources are written in.
RUNTIME = 'python311'
SOURCE_ARCHIVE_URL = 'gs://{bucket}/{name}'
ENABLED_FUNCTIONS_ENV = 'ENABLED_FUNCTIONS'

SOURCE_FILE_MODE = 0o755
MANIFEST_FILE_MODE = 0o655

# Only the static resource path helpers are used; no API client is created.
_FUNCTIONS_CLIENT = functions_v1.CloudFunctionsServiceClient


class GCPTemplateBuilder(abstract_backend.TemplateBuilder):
    """Builds the archive and request body used to deploy a function.

    Args:
        cfg: The GCP provider configuration, holding `project_id`,
            `location_id` and `storage_name`.
        provider: The provider the functions are looked up in.
        package_root: Directory the function sources are read from. Defaults
            to $FNBUNDLE_PACKAGE_ROOT, or the current directory.

    Raises:
        ConfigurationError: If `cfg` lacks a required setting.
    """

    def __init__(self,
                 cfg: Mapping[str, Any],
                 provider: registry.Provider,
                 package_root: Optional[str] = None):
        self.gcp_config = config_lib.GCPConfig.from_dict(cfg)
        self.provider = provider
        self.package_root = (package_root if package_root is not None else
                             config_lib.default_package_root())

    def build(self, name: str) -> data_models.FunctionData:
        logger.debug('Compressing all assets into an artifact')

        fn = find_function(self.provider, name)
        resources = zip_resources_for(fn.name())
        raw = utils.make_zip(resources, root=self.package_root)

        logger.debug(f'Compression is successful (zip size: {len(raw)} bytes)')

        return data_models.FunctionData(
            raw=raw,
            request_body=self.request_body(name, fn.config()),
        )

    def request_body(
            self, name: str,
            config: data_models.FunctionConfigType) -> Dict[str, Any]:
        """Renders the Cloud Functions request body of a function.

        Optional settings are only included when they differ from their zero
        value.
        """
        function_path = _FUNCTIONS_CLIENT.cloud_function_path(
            self.gcp_config.project_id, self.gcp_config.location_id, name)
        body: Dict[str, Any] = {
            'name': function_path,
            'description': config.description,
            'entryPoint': config.entry_point,
            'runtime': RUNTIME,
            'sourceArchiveUrl': SOURCE_ARCHIVE_URL.format(
                bucket=self.gcp_config.storage_name, name=name),
            'eventTrigger': config.trigger.to_dict(),
            'environmentVariables': {
                ENABLED_FUNCTIONS_ENV: name,
            },
        }
        if config.timeout > datetime.timedelta(0):
            body['timeout'] = _duration_string(config.timeout)
        if config.memory_size > 0:
            body['memorySize'] = config.memory_size
        if config.service_account_email:
            body['serviceAccountEmail'] = config.service_account_email
        if config.labels:
            body['labels'] = dict(config.labels)
        if config.max_instances > 0:
            body['maxInstances'] = config.max_instances
        if config.vpc_connector:
            body['vpcConnector'] = config.vpc_connector
        return body

    def raw_template(self, name: str) -> str:
        """Returns the JSON to POST to the Cloud Functions endpoint."""
        fn = find_function(self.provider, name)
        return json.dumps(self.request_body(name, fn.config()), indent=2)

    def zip_resources(self) -> List[data_models.FileResource]:
        return zip_resources(self.provider.function_registry)


def find_function(provider: registry.Provider,
                  name: str) -> abstract_backend.InstallableFunction:
    """Looks up a function and checks that it can be installed on GCP."""
    fn = provider.find_function_by_name(name)
    if not isinstance(fn, abstract_backend.InstallableFunction):
        raise exceptions.IncompatibleFunctionError(
            f'Incompatible type received for function {name!r}: expecting an '
            f'installable function, got {type(fn).__name__!r}.')
    return fn


def zip_resources(
    function_registry: Optional[registry.FunctionRegistry] = None
) -> List[data_models.FileResource]:
    """Returns the files bundled for every GCP function type."""
    function_registry = function_registry or registry.REGISTRY
    resources: List[data_models.FileResource] = []
    for type_name in function_registry.list_functions(
            gcp_functions.PROVIDER_NAME):
        resources.extend(zip_resources_for(type_name))
    return resources


def zip_resources_for(type_name: str) -> List[data_models.FileResource]:
    """Returns the files bundled for one function type."""
    base = os.path.join('pkg', type_name)
    return [
        data_models.FileResource(path=os.path.join(base, f'{type_name}.py'),
                                 mode=SOURCE_FILE_MODE),
        data_models.FileResource(path=os.path.join(base, 'requirements.txt'),
                                 mode=MANIFEST_FILE_MODE),
        data_models.FileResource(path=os.path.join(base, 'constraints.txt'),
                                 mode=MANIFEST_FILE_MODE),
    ]


def _duration_string(timeout: datetime.timedelta) -> str:
    """Formats a positive duration as '30s', '1m30s', '1h0m0s' or '500ms'."""
    micros = timeout // datetime.timedelta(microseconds=1)
    if micros < 1000:
        return f'{micros}µs'
    if micros < 1000000:
        return f'{_decimal(micros, 3)}ms'

    hours, micros = divmod(micros, 3600 * 1000000)
    minutes, micros = divmod(micros, 60 * 1000000)
    seconds = f'{_decimal(micros, 6)}s'
    if hours:
        return f'{hours}h{minutes}m{seconds}'
    if minutes:
        return f'{minutes}m{seconds}'
    return seconds


def _decimal(value: int, scale: int) -> str:
    whole, frac = divmod(value, 10**scale)
    if not frac:
        return str(whole)
    return f'{whole}.{frac:0{scale}d}'.rstrip('0')
