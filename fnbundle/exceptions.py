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
"""Custom exceptions for fnbundle."""


class FunctionBuildError(Exception):
    """Base class for errors raised while building a function artifact."""
    pass


class FunctionNotFoundError(FunctionBuildError):
    """Raised when no function is registered under the requested name."""
    pass


class IncompatibleFunctionError(FunctionBuildError):
    """Raised when a resolved function cannot be packaged and installed."""
    pass


class ArchiveError(FunctionBuildError):
    """Raised when the function archive cannot be read or compressed."""
    pass


class ConfigurationError(FunctionBuildError):
    """Raised when provider or function configuration is invalid."""
    pass
