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
"""Logging utilities for fnbundle."""
import logging
import os
import sys
import threading

import colorama

_FORMAT = '%(levelname).1s %(asctime)s %(filename)s:%(lineno)d] %(message)s'
_DATE_FORMAT = '%m-%d %H:%M:%S'

_LEVEL_COLORS = {
    logging.WARNING: colorama.Fore.YELLOW,
    logging.ERROR: colorama.Fore.RED,
    logging.CRITICAL: colorama.Fore.RED + colorama.Style.BRIGHT,
}


class NewLineFormatter(logging.Formatter):
    """Adds the log prefix to every line of a multi-line message."""

    def __init__(self, fmt, datefmt=None, colorize=False):
        super().__init__(fmt, datefmt)
        self.colorize = colorize

    def format(self, record):
        msg = super().format(record)
        if record.message != '':
            parts = msg.split(record.message)
            msg = msg.replace('\n', '\r\n' + parts[0])
        color = _LEVEL_COLORS.get(record.levelno)
        if self.colorize and color is not None:
            msg = f'{color}{msg}{colorama.Style.RESET_ALL}'
        return msg


FORMATTER = NewLineFormatter(_FORMAT, datefmt=_DATE_FORMAT)

_root_logger = logging.getLogger('fnbundle')
_default_handler = None
_logging_config = threading.Lock()


def _debug_enabled() -> bool:
    return os.environ.get('FNBUNDLE_DEBUG', '').lower() in ('1', 'true', 'yes')


def _setup_logger():
    global _default_handler
    with _logging_config:
        if _default_handler is not None:
            return
        _root_logger.setLevel(logging.DEBUG)
        _default_handler = logging.StreamHandler(sys.stdout)
        _default_handler.setLevel(
            logging.DEBUG if _debug_enabled() else logging.INFO)
        _default_handler.setFormatter(
            NewLineFormatter(_FORMAT,
                             datefmt=_DATE_FORMAT,
                             colorize=sys.stdout.isatty()))
        _root_logger.addHandler(_default_handler)
        # Keep messages out of the root logger's handlers.
        _root_logger.propagate = False


_setup_logger()


def init_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
