"""Shared configuration for the section board.

This module centralizes the grid layout and the limits used by both the
synchronisation store and the web service.  Values can be overridden with
environment variables so a deployment can match the physical floor plan
without code changes.
"""

from __future__ import annotations

import os

# Grid layout ----------------------------------------------------------------

# Number of columns drawn for a warehouse, the aisle column included.
GRID_WIDTH = int(os.getenv("OCCUPANCY_GRID_WIDTH", "15"))

# Rows drawn by default.  Placement keeps extending downwards past this value
# when a warehouse holds more sections than fit.
GRID_HEIGHT = int(os.getenv("OCCUPANCY_GRID_HEIGHT", "10"))

# Column reserved as the aisle.  Sections are never assigned to it.
AISLE_COLUMN = int(os.getenv("OCCUPANCY_AISLE_COLUMN", str(GRID_WIDTH // 2)))

# Limits -----------------------------------------------------------------------

# Sections created together with a new warehouse.
MIN_WAREHOUSE_SECTIONS = 1
MAX_WAREHOUSE_SECTIONS = 5000

# Sections appended to an existing warehouse in one go.
MAX_ADDED_SECTIONS = 100

# Removed sections remembered for undo.
UNDO_CAPACITY = 10

# Warehouse letters run from ``FIRST_LETTER`` to ``LAST_LETTER``.
FIRST_LETTER = "A"
LAST_LETTER = "Z"

# Remote service ---------------------------------------------------------------

API_URL = os.getenv("OCCUPANCY_API_URL", "http://127.0.0.1:8000")
API_TIMEOUT = float(os.getenv("OCCUPANCY_API_TIMEOUT", "15"))
