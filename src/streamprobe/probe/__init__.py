# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Stream connectivity and metadata probes."""

from .budget import Deadline, derive_metadata_budget
from .connection import ConnectionTester, test_stream_connection
from .engine import ProbeEngine
from .metadata import MetadataExtractor, format_metadata_for_display, get_current_song, validate_metadata

__all__ = [
    "ConnectionTester",
    "Deadline",
    "MetadataExtractor",
    "ProbeEngine",
    "derive_metadata_budget",
    "format_metadata_for_display",
    "get_current_song",
    "test_stream_connection",
    "validate_metadata",
]
