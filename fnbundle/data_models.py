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
"""Core data structures for function artifacts."""
import dataclasses
import datetime
from typing import Any, Dict, Union


@dataclasses.dataclass(frozen=True)
class FileResource:
    """A local file to be bundled into the function archive.

    Attributes:
        path: Path of the file, relative to the package root. The same path
            is used as the entry name inside the archive.
        mode: Permission bits stored with the archive entry.
    """
    path: str
    mode: int = 0o644


# --- Trigger Definitions (Type-Safe) ---
# One dataclass per event source, combined with a Union. The defaults carry
# the event type and service Cloud Functions expects for each source.


@dataclasses.dataclass(frozen=True)
class PubSubTrigger:
    """Fires the function for every message published to a topic.

    Attributes:
        resource: The topic, e.g. 'projects/my-project/topics/my-topic'.
    """
    resource: str
    event_type: str = 'google.pubsub.topic.publish'
    service: str = 'pubsub.googleapis.com'

    def to_dict(self) -> Dict[str, str]:
        return _trigger_dict(self)


@dataclasses.dataclass(frozen=True)
class StorageTrigger:
    """Fires the function when an object is written to a bucket.

    Attributes:
        resource: The bucket, e.g. 'projects/_/buckets/my-bucket'.
    """
    resource: str
    event_type: str = 'google.storage.object.finalize'
    service: str = 'storage.googleapis.com'

    def to_dict(self) -> Dict[str, str]:
        return _trigger_dict(self)


Trigger = Union[PubSubTrigger, StorageTrigger]


def _trigger_dict(trigger: Trigger) -> Dict[str, str]:
    body = {
        'eventType': trigger.event_type,
        'resource': trigger.resource,
    }
    if trigger.service:
        body['service'] = trigger.service
    return body


# --- Function configuration ---


@dataclasses.dataclass
class FunctionConfig:
    """Settings shared by every Cloud Functions function kind.

    Optional settings use their zero value to mean "not set"; unset settings
    are left out of the deployment request.

    Attributes:
        description: Human readable description of the function.
        entry_point: Name of the handler invoked by the runtime.
        trigger: The event source of the function.
        timeout: Execution timeout.
        memory_size: Memory available to the function, in megabytes.
        service_account_email: Identity the function runs as.
        labels: Labels attached to the deployed function.
        max_instances: Upper bound on concurrently running instances.
        vpc_connector: Serverless VPC connector used for egress.
    """
    description: str
    entry_point: str
    trigger: Trigger
    timeout: datetime.timedelta = datetime.timedelta(0)
    memory_size: int = 0
    service_account_email: str = ''
    labels: Dict[str, str] = dataclasses.field(default_factory=dict)
    max_instances: int = 0
    vpc_connector: str = ''


@dataclasses.dataclass
class PubSubFunctionConfig(FunctionConfig):
    """Configuration of a function consuming a Pub/Sub topic."""
    description: str = ''
    entry_point: str = 'run_pubsub'
    trigger: PubSubTrigger = PubSubTrigger(resource='')


@dataclasses.dataclass
class StorageFunctionConfig(FunctionConfig):
    """Configuration of a function consuming Cloud Storage events."""
    description: str = ''
    entry_point: str = 'run_cloud_storage'
    trigger: StorageTrigger = StorageTrigger(resource='')


FunctionConfigType = Union[PubSubFunctionConfig, StorageFunctionConfig]


@dataclasses.dataclass
class FunctionData:
    """Output of a build: the zipped sources and the deployment request.

    Attributes:
        raw: The zip archive bytes.
        request_body: The body to POST to the Cloud Functions API.
    """
    raw: bytes
    request_body: Dict[str, Any]
