#!/usr/bin/env python3
"""
Main entry point for the Twitch chat relay
"""

from twitch_relay.main import run

if __name__ == "__main__":
    run()
