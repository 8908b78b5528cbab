"""coursehub entrypoint.

Run with:
  python -m coursehub
"""

import os
import uvicorn

from coursehub.log import configure_logging, install_fault_hooks

def main() -> None:
    configure_logging()
    install_fault_hooks()
    host = os.getenv("COURSEHUB_HOST", "0.0.0.0")
    port = int(os.getenv("COURSEHUB_PORT", "8000"))
    reload = os.getenv("COURSEHUB_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    uvicorn.run("coursehub.app:app", host=host, port=port, reload=reload, log_config=None)

if __name__ == "__main__":
    main()
