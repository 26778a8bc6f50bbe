#!/usr/bin/env python3
"""
Root launcher for the token workload (mint / transfer / approve / transferFrom).
"""
import sys
import os

# Ensure the current directory is in the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from swapbench.cli import main

if __name__ == "__main__":
    sys.exit(main(workload="token"))
