import os
import sys

# Tests import `app`, `extract` and `qc` as top-level packages, and the API tests
# reuse helpers via `tests.<module>`; both need viewer-backend on sys.path.
BACKEND_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)
