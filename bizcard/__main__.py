"""Run the development server: ``python -m bizcard``."""
import os

import uvicorn


if __name__ == "__main__":
    uvicorn.run(
        "bizcard.app:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("APP_ENV", "dev") == "dev",
    )
