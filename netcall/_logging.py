# =============================================================================
# Netcall -- Package Logger
# =============================================================================

import logging

logger = logging.getLogger("netcall")
