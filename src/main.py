"""
UPnP Device Discovery - Main Entry Point
Usage: python src/main.py [DeviceType] [version]
"""

import asyncio
import sys
import logging
import os

from config_loader import load_config, setup_logging
from ssdp import SsdpDiscovery

logger = logging.getLogger(__name__)

async def main(argv):
    """Main entry point"""

    try:
        # Get config file path from environment variable or use default
        config_path = os.environ.get('CONFIG_FILE', 'config/config.yaml')
        config = load_config(config_path)
        setup_logging(config)
        logger.info(f"Using configuration file: {config_path}")

        device_type = argv[0] if len(argv) > 0 else config['ssdp']['device_type']
        version = int(argv[1]) if len(argv) > 1 else config['ssdp']['device_version']

        discovery = SsdpDiscovery(config)
        result = await discovery.discover(device_type, version)

        for device in result.devices:
            logger.info(f"{device.friendly_name} [{device.device_type}] {device.udn} base={device.url_base}")
            for service in device.services:
                logger.info(f"    {service.service_type} control={device.resolve_url(service.control_url)}")

    except Exception as e:
        logger.error(f"Discovery failed: {e}")
        return 1

    return 0

if __name__ == "__main__":
    try:
        exit_code = asyncio.run(main(sys.argv[1:]))
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nDiscovery stopped by user")
        sys.exit(0)
