from __future__ import annotations

OK = 0
ERR_LISTING = 1
ERR_USAGE = 2
ERR_CONFIG = 3
ERR_STORE = 4
ERR_VALIDATION = 5
ERR_INTERNAL = 99
