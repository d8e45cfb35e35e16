#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Entry point for the device manager host bootstrap.

Usage:
    ENCRYPTION_TOKEN=<token> sudo -E ./install.py [--no-input]
"""

import sys

from provision.main_installer import main

if __name__ == "__main__":
    sys.exit(main())
