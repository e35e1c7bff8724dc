# HTTP Helper for device description fetches
# Plain-HTTP session configuration for UPnP devices on the local network

import aiohttp
import logging

logger = logging.getLogger(__name__)

def create_device_session(timeout_seconds: float = 5, limit_per_host: int = 2) -> aiohttp.ClientSession:
    """
    Create properly configured aiohttp session for local device connections
    Prevents connection leaks with proper cleanup and limits
    """
    connector = aiohttp.TCPConnector(
        limit_per_host=limit_per_host,  # Devices tend to have tiny HTTP servers
        ssl=False,                      # Description documents are served over HTTP
        force_close=True,               # Force connection cleanup
        enable_cleanup_closed=True      # Additional cleanup
    )

    logger.debug(f"Creating device session (timeout={timeout_seconds}s)")
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=timeout_seconds)
    )
