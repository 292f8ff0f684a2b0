"""
Run the applications API with uvicorn.

    python -m jobfair
"""

import uvicorn

from jobfair.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "jobfair.app:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
