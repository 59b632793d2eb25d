import uvicorn
from vpn_toggle.main import app
from vpn_toggle.logging_utility import logger
from vpn_toggle.settings import load_settings


if __name__=='__main__':
    settings = load_settings()
    logger.info("Starting VPN Toggle application")
    uvicorn.run(app, host=settings.host, port=settings.port)
