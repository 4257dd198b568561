import logging


# Configure logging
logging.Formatter.default_time_format = "%Y-%m-%dT%H:%M:%S"
logging.Formatter.default_msec_format = "%s.%03d"

log_formatter = logging.Formatter(
    "%(asctime)s %(name)s [%(levelname)s] %(message)s"
)
log_handler = logging.StreamHandler()
log_handler.setFormatter(log_formatter)

logger = logging.getLogger("zoneplay")
logger.addHandler(log_handler)
logger.setLevel(logging.INFO)

# Have aiohttp's client logger adhere to the zoneplay log format.
aiohttp_client_logger = logging.getLogger("aiohttp.client")
aiohttp_client_logger.addHandler(log_handler)
