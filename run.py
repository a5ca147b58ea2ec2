#!/usr/bin/env python3
"""
Simple runner for the Vaidya chat service
Runs the FastAPI app straight from the project directory
"""

import sys
import os

# Add current directory to Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

if __name__ == "__main__":
    import uvicorn
    from config_loader import load_config
    from logging_setup import setup_logging

    # Load configuration
    config = load_config()
    setup_logging(config)

    print("🌿 Starting Vaidya chat...")
    print(f"📍 Host: {config['server']['host']}")
    print(f"🔌 Port: {config['server']['port']}")
    print(f"🗄️ Database: {config['database'].get('url') or config['database']['backend']}")

    # Run the FastAPI app
    uvicorn.run(
        "main:app",
        host=config["server"]["host"],
        port=config["server"]["port"],
        reload=config["app"]["debug"],
        log_level=config["app"]["log_level"].lower()
    )
