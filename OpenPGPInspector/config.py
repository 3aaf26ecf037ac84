""" Inspector configuration.

    Every value can be overridden through the environment so the command line
    front end and tests can point at a different key server.
"""

import os

def _get_float(name, default):
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default

def _get_int(name, default):
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default

# =============================================================================
# KEY SERVER
# =============================================================================

# HKP lookup endpoint, queried with op=get&search=0x<KEYID>&options=mr
KEYSERVER_URL = os.getenv('OPENPGP_INSPECTOR_KEYSERVER', 'https://pgp.mit.edu/pks/lookup')

HTTP_TIMEOUT_SECONDS = _get_float('OPENPGP_INSPECTOR_HTTP_TIMEOUT', 15.0)

# =============================================================================
# BACKGROUND WORK
# =============================================================================

BACKGROUND_WORKERS = _get_int('OPENPGP_INSPECTOR_WORKERS', 4)

# How long the command line waits for pending verifications before printing
WAIT_TIMEOUT_SECONDS = _get_float('OPENPGP_INSPECTOR_WAIT_TIMEOUT', 5.0)

# =============================================================================
# DECODING LIMITS
# =============================================================================

# Compressed packets allowed on the reader stack
MAX_NESTING = _get_int('OPENPGP_INSPECTOR_MAX_NESTING', 8)
