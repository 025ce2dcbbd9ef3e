#!/usr/bin/env python3
"""
Image Search Aggregator Development Server
Runs Flask on port 3001 with error details and no rate limiting
"""
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from imagesearch_app import create_app
from imagesearch_app.config import AppConfig

if __name__ == '__main__':
    config = AppConfig.from_env()
    config.env = 'development'
    config.disable_rate_limiting = True
    app = create_app(config)
    app.run(
        host='0.0.0.0',
        port=config.port,
        debug=True,
        use_reloader=False
    )
