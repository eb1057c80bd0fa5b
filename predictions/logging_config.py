import logging, logging.config

def setup_logging(level: str = "INFO", access_log: bool = True, sql_echo: bool = False):
    """Console logging for the API process; sweeps and services log under ``predictions.*``."""
    level = level.upper()
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                        "datefmt": "%Y-%m-%d %H:%M:%S"},
            # uvicorn access lines arrive pre-formatted
            "access_simple": {"format": "%(message)s"},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "default"},
            "access":  {"class": "logging.StreamHandler", "formatter": "access_simple"},
        },
        "loggers": {
            "predictions":    {"level": level, "handlers": ["console"], "propagate": False},
            # engine echo goes through logging so it shares the console format
            "sqlalchemy.engine": {"level": ("INFO" if sql_echo else "WARNING"),
                                  "handlers": ["console"], "propagate": False},
            "uvicorn.error":  {"level": level, "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": ("INFO" if access_log else "WARNING"),
                               "handlers": ["access"], "propagate": False},
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
    })
