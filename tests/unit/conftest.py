"""
Unit Test Layer Configuration

Structure:
    tests/unit/
    └── tdd/         Pure business rules, templates and configuration

Usage:
    pytest tests/unit -v
"""
import os
import sys

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
