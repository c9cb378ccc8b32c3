#!/usr/bin/env python3
"""
Main entry point for the token proxy when running from a source checkout.
This file allows running the proxy directly from the project root.
"""

import sys
from pathlib import Path

# Add the src directory to Python path
src_dir = Path(__file__).parent / "src"
sys.path.insert(0, str(src_dir))


def main():
    """Run the token proxy with settings from the environment."""
    from token_proxy.main import main as run_proxy

    run_proxy()


if __name__ == "__main__":
    main()
