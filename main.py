#!/usr/bin/env python3
"""
Main entry point for the Meetspot API
"""

from meetspot.app import main

if __name__ == '__main__':
    main()
