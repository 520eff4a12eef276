# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024 glyphsim contributors

__version__ = "0.1.0"
