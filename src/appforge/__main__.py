"""appforge entrypoint.

Run with:
  python -m appforge
"""

import logging

import uvicorn

from appforge.config import load_settings

def main() -> None:
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("appforge.app:app", host=settings.host, port=settings.port, reload=settings.reload)

if __name__ == "__main__":
    main()
