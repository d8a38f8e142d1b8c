import sys

from .config import Config
from .logger import logger, setup_logger
from .server import create_app


def main():
    setup_logger(Config.LOG_LEVEL)
    # Validate configuration before startup
    if not Config.validate():
        logger.error('Configuration validation failed. Please check your .env file or secret store.')
        sys.exit(1)

    logger.info('Starting tweetgate OAuth2 service')
    logger.info(f'Token store: {Config.TOKEN_STORE_BACKEND}')
    logger.info(f'Callback URL: {Config.TW_REDIRECT_URI}')

    app = create_app()
    logger.info(f'OAuth login URL: http://localhost:{Config.PORT}/auth/login')
    try:
        app.run(host='0.0.0.0', port=Config.PORT, debug=not Config.is_production())
    except KeyboardInterrupt:
        logger.info('Keyboard interrupt received')
    finally:
        logger.info('Server stopped')


if __name__ == '__main__':
    main()
