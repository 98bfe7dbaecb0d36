#!/usr/bin/env python3
"""
icons.py - Icon/emoji definitions for craftport output

Usage:
    from craftport.icons import SUCCESS, WARNING, ERROR
    print(f"{SUCCESS} Done!")

Unicode characters for console output live here; other modules import them.
"""

SUCCESS = "✅"
ERROR = "❌"
WARNING = "⚠️"
INFO = "ℹ️"
DEBUG = "🔍"
CRITICAL = "💥"
DONE = "✔️"
