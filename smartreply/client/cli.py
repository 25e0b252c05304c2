#!/usr/bin/env python3
"""
SmartReply Terminal Client

Paste a received message, pick a tone, and watch three reply options stream
in from the relay. Ctrl+C during a generation stops it; Ctrl+C at the prompt
exits.
"""

import argparse
import asyncio
import signal
import sys
from datetime import datetime
from typing import Optional

import aiohttp
from colorama import Fore, Style, init

from smartreply.config import get_config
from smartreply.common.models import TONES
from .session import GenerationResult, ReplySession

init(autoreset=True)


def format_timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def print_info_message(message: str):
    print(f"{Fore.BLUE}[{format_timestamp()}] {Style.BRIGHT}INFO:{Style.RESET_ALL} {message}")


def print_error_message(message: str):
    print(f"{Fore.RED}[{format_timestamp()}] {Style.BRIGHT}ERROR:{Style.RESET_ALL} {message}")


def print_result(result: GenerationResult):
    if result.cancelled:
        print_info_message("Generation stopped")
        return
    if result.error:
        print_error_message(result.error)
        return
    if not result.replies:
        print_error_message("No replies could be parsed from the response")
        return

    print()
    for reply in result.replies:
        print(f"{Fore.GREEN}{Style.BRIGHT}[{reply.reply_index + 1}]{Style.RESET_ALL} {reply.content}\n")


class ReplyCLI:
    """Interactive loop over a ReplySession."""

    def __init__(self, relay_url: str, tone: str, show_stream: bool = False):
        self.relay_url = relay_url
        self.tone = tone
        self.show_stream = show_stream
        self._streamed = 0

    def _on_text(self, text: str):
        if not self.show_stream:
            return
        # Snapshots can shrink the text; reprint from scratch when they do
        if len(text) < self._streamed:
            print()
            self._streamed = 0
        print(f"{Style.DIM}{text[self._streamed:]}", end="", flush=True)
        self._streamed = len(text)

    async def _read(self, prompt: str) -> str:
        loop = asyncio.get_running_loop()
        return (await loop.run_in_executor(None, lambda: input(prompt))).strip()

    async def _choose(self, session: ReplySession, result: GenerationResult):
        choice = await self._read(f"{Fore.CYAN}Use reply (1-{len(result.replies)}, Enter to skip):{Style.RESET_ALL} ")
        if not choice.isdigit() or not 1 <= int(choice) <= len(result.replies):
            return
        try:
            learned = await session.learn(result.replies[int(choice) - 1].content)
        except aiohttp.ClientError as e:
            print_error_message(f"Failed to reach relay: {e}")
            return
        if learned:
            print_info_message("Saved to your writing style")

    async def run(self):
        print_info_message(f"Relay: {self.relay_url}  Tone: {self.tone}")
        loop = asyncio.get_running_loop()

        async with aiohttp.ClientSession() as http:
            session = ReplySession(http, self.relay_url, on_text=self._on_text)
            while True:
                message = await self._read(f"{Fore.CYAN}Message:{Style.RESET_ALL} ")
                if not message:
                    continue
                if message in ("/quit", "/exit"):
                    break

                self._streamed = 0
                loop.add_signal_handler(signal.SIGINT, session.stop)
                try:
                    result = await session.generate(message, self.tone)
                finally:
                    loop.remove_signal_handler(signal.SIGINT)

                print_result(result)
                if result.replies:
                    await self._choose(session, result)


def main():
    parser = argparse.ArgumentParser(description="SmartReply terminal client")
    parser.add_argument(
        "--relay",
        default=None,
        help="Relay base URL (default: [client] relay_url from config)"
    )
    parser.add_argument(
        "--tone",
        choices=TONES,
        default="professional",
        help="Reply tone (default: professional)"
    )
    parser.add_argument(
        "--stream",
        action="store_true",
        help="Print the model output as it streams"
    )
    args = parser.parse_args()

    relay_url: Optional[str] = args.relay or get_config().client.relay_url
    cli = ReplyCLI(relay_url, args.tone, show_stream=args.stream)
    try:
        asyncio.run(cli.run())
    except (KeyboardInterrupt, EOFError):
        print("\nTerminated")
        sys.exit(0)


if __name__ == "__main__":
    main()
