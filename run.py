"""Simple script to run the gateway"""

import uvicorn
from adms_gateway.config import config

if __name__ == "__main__":
    uvicorn.run(
        "adms_gateway.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=config.API_DEBUG,
        log_level="debug" if config.API_DEBUG else "info",
    )
