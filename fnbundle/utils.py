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
"""Utility functions for packaging function sources."""
import io
import os
import stat
import zipfile
from typing import Sequence

from fnbundle import data_models
from fnbundle import exceptions

# Earliest timestamp a zip entry can hold. Every entry uses it so that the
# same sources always produce the same archive bytes.
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def make_zip(resources: Sequence[data_models.FileResource],
             root: str = '.') -> bytes:
    """Packages local files into an in-memory zip archive.

    Entries are written in the order of `resources`, named after each
    resource's relative path and carrying its permission bits.

    Args:
        resources: The files to bundle.
        root: Directory the resource paths are relative to.

    Returns:
        The bytes of the complete zip archive.

    Raises:
        ArchiveError: If a file cannot be read or the archive cannot be
            written. No partial archive is returned.
    """
    buffer = io.BytesIO()
    try:
        with zipfile.ZipFile(buffer, 'w',
                             compression=zipfile.ZIP_DEFLATED) as archive:
            for resource in resources:
                _add_resource(archive, resource, root)
    except OSError as e:
        raise exceptions.ArchiveError(
            f'Failed to build the function archive: {e}') from e
    return buffer.getvalue()


def _add_resource(archive: zipfile.ZipFile,
                  resource: data_models.FileResource, root: str) -> None:
    with open(os.path.join(root, resource.path), 'rb') as f:
        content = f.read()

    arcname = resource.path.replace(os.sep, '/')
    info = zipfile.ZipInfo(arcname, date_time=ZIP_EPOCH)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.create_system = 3  # Unix, so that the mode bits are honored.
    info.external_attr = (stat.S_IFREG | resource.mode) << 16
    archive.writestr(info, content)
