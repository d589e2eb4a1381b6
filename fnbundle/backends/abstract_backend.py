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
"""Abstract interfaces for template builder implementations."""
from typing import Protocol, runtime_checkable

from fnbundle import data_models


@runtime_checkable
class InstallableFunction(Protocol):
    """A registered function that can be packaged and deployed.

    Function types must implement this protocol to be accepted by a
    template builder.
    """

    def name(self) -> str:
        """Returns the function type name, which selects its source files."""
        raise NotImplementedError

    def config(self) -> data_models.FunctionConfigType:
        """Returns the typed configuration of the function."""
        raise NotImplementedError


class TemplateBuilder(Protocol):
    """Abstract interface for a provider's template builder.

    Each provider that supports deployment must provide a class that
    implements this protocol.
    """

    def build(self, name: str) -> data_models.FunctionData:
        """Packages a function and renders its deployment request.

        This method:
        1.  Resolves the function configured under `name`.
        2.  Compresses the function's source files into a zip archive.
        3.  Renders the request body to POST to the provider's API.

        Returns:
            The archive bytes together with the request body.
        """
        raise NotImplementedError

    def raw_template(self, name: str) -> str:
        """Returns the printable request body for a function.

        No archive is built; this is meant for previews and dry runs.
        """
        raise NotImplementedError
