import os
import logging
from logging.handlers import RotatingFileHandler, SysLogHandler
from flask import Flask


__version__ = '1.0.0'

# verbose setting -> stderr/syslog level
VERBOSE_LEVELS = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}

SYSLOG_ADDRESS = '/dev/log'


def configure_logging(verbose=0, syslog=False, logfile=None):
    """Configure logging for the rotator package"""

    log_level = VERBOSE_LEVELS.get(verbose, logging.DEBUG)

    handlers = []

    # Console handler (stderr)
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    ))
    handlers.append(console_handler)

    # System log mirror
    if syslog:
        try:
            syslog_handler = SysLogHandler(address=SYSLOG_ADDRESS, facility=SysLogHandler.LOG_DAEMON)
        except OSError as e:
            logging.getLogger(__name__).warning(f"System log unavailable ({SYSLOG_ADDRESS}): {e}")
        else:
            syslog_handler.setLevel(log_level)
            syslog_handler.setFormatter(logging.Formatter('backup-rotator[%(process)d]: %(message)s'))
            handlers.append(syslog_handler)

    # File handler
    if logfile:
        log_dir = os.path.dirname(logfile)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            logfile,
            maxBytes=10485760,  # 10MB
            backupCount=10
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(
            '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
        ))
        handlers.append(file_handler)

    package_logger = logging.getLogger('rotator')
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        package_logger.addHandler(handler)
    package_logger.setLevel(log_level)
    package_logger.propagate = False

    package_logger.debug(f"Logging configured (level: {logging.getLevelName(log_level)})")
    return package_logger


def create_app(config_name=None, rotator_config=None):
    """Flask application factory for the status server"""

    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'production')

    from rotator.config import config, load_config
    app.config.from_object(config[config_name])

    # Rotation settings are loaded once and shared read-only
    if rotator_config is None:
        rotator_config = load_config(app.config.get('ROTATOR_CONFIG_FILE'))
    app.extensions['rotator_config'] = rotator_config

    configure_logging(rotator_config.verbose, rotator_config.syslog, rotator_config.logfile)
    app.logger.setLevel(VERBOSE_LEVELS.get(rotator_config.verbose, logging.DEBUG))

    # Register blueprints
    from rotator.routes import status_routes
    app.register_blueprint(status_routes.bp)

    # Health check endpoint
    @app.route('/health')
    def health():
        return {'status': 'healthy'}, 200

    from rotator.scheduler import init_scheduler, start_scheduler, stop_scheduler
    import atexit

    # Only the designated worker runs the scheduler
    is_scheduler_worker = os.environ.get('SCHEDULER_WORKER', 'true').lower() == 'true'

    if app.config.get('SCHEDULER_ENABLED', True) and is_scheduler_worker:
        app.logger.info("Initializing scheduler in this process...")
        init_scheduler(app)
        start_scheduler()

        # Register cleanup function to stop scheduler on app shutdown
        atexit.register(stop_scheduler)
        app.logger.info("Scheduler initialized and started successfully")
    else:
        app.logger.info("Scheduler initialization skipped in this process")

    return app
