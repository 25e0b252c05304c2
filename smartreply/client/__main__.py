"""Entry point for: python3 -m smartreply.client"""
from smartreply.client.cli import main

main()
