# main.py
import asyncio
import logging
import uvicorn
from tradesphere.app import create_app
from tradesphere.config import Config, setup_logging

async def main():
    # Setup logging
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        Config.validate()
        server = uvicorn.Server(uvicorn.Config(
            create_app(),
            host=Config.HOST,
            port=Config.PORT,
            log_config=None,
        ))
        logger.info(f"Starting API on {Config.HOST}:{Config.PORT}...")
        await server.serve()
    except Exception as e:
        logger.error(f"Error starting server: {e}", exc_info=True)
        raise

if __name__ == "__main__":
    asyncio.run(main())
