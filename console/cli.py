"""
Legacy PLC Operator Console
============================
Command-line client for a running controller. Speaks the ASCII
control protocol and reads the management JSON snapshot:

  - Word reads (inputs, outputs, registers)
  - STATUS line
  - Full process-image snapshot
  - Raw protocol requests for troubleshooting

Usage:
  python -m console.cli                       # Interactive mode
  python -m console.cli status                # One-shot status
  python -m console.cli rr 20                 # One-shot register read
  python -m console.cli --port 9901 --mgmt-port 8901 snapshot
"""

import cmd
import sys
import json
import time
import socket
import logging
import argparse
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_CONTROL_PORT = 9001
DEFAULT_MGMT_PORT = 8001


class PLCClient:
    """
    Minimal client for both controller protocols.

    The controller serves one client per scan and drops a client
    that was silent when accepted, so an empty reply is retried.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        control_port: int = DEFAULT_CONTROL_PORT,
        mgmt_port: int = DEFAULT_MGMT_PORT,
        timeout: float = 2.0,
        attempts: int = 3,
    ):
        self.host = host
        self.control_port = control_port
        self.mgmt_port = mgmt_port
        self.timeout = timeout
        self.attempts = attempts

    def send_command(self, command: str) -> str:
        """Send one control-protocol request and return the reply line."""
        payload = (command + "\r\n").encode("ascii")
        for attempt in range(1, self.attempts + 1):
            try:
                reply = self._exchange(self.control_port, payload)
            except (ConnectionResetError, BrokenPipeError):
                reply = b""
            if reply:
                return reply.decode("ascii", errors="replace").rstrip("\r\n")
            logger.debug("No reply to %r (attempt %d)", command, attempt)
        raise ConnectionError(f"No reply from {self.host}:{self.control_port}")

    def fetch_snapshot(self) -> dict:
        """Fetch and decode the management JSON document."""
        payload = (
            f"GET / HTTP/1.1\r\nHost: {self.host}\r\n"
            "Connection: close\r\n\r\n"
        ).encode("ascii")
        response = self._exchange(self.mgmt_port, payload)
        if not response:
            raise ConnectionError(f"No reply from {self.host}:{self.mgmt_port}")
        _, _, body = response.partition(b"\r\n\r\n")
        return json.loads(body.decode("utf-8"))

    def read_word(self, area: str, address) -> str:
        return self.send_command(f"R{area.upper()}{address}")

    def _exchange(self, port: int, payload: bytes) -> bytes:
        with socket.create_connection((self.host, port), timeout=self.timeout) as sock:
            sock.sendall(payload)
            chunks = []
            while True:
                try:
                    chunk = sock.recv(4096)
                except ConnectionResetError:
                    break
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)


class PLCConsole(cmd.Cmd):
    """Interactive CLI for the legacy PLC."""

    intro = (
        "\n"
        "+------------------------------------------------------+\n"
        "|  Legacy PLC Simulator - Operator Console             |\n"
        "|  ASCII/TCP control + HTTP/JSON management            |\n"
        "|  Type 'help' for commands, 'quit' to exit            |\n"
        "+------------------------------------------------------+\n"
    )
    prompt = "PLC> "

    def __init__(self, client: PLCClient):
        super().__init__()
        self.client = client

    def _request(self, command: str):
        try:
            print(self.client.send_command(command))
        except OSError as exc:
            print(f"Communication error: {exc}")

    # ── Protocol Commands ────────────────────────────────────

    def do_status(self, arg):
        """Controller status line: status"""
        try:
            reply = self.client.send_command("STATUS")
        except OSError as exc:
            print(f"Communication error: {exc}")
            return
        fields = reply.split(",")
        if len(fields) != 4:
            print(reply)
            return
        state, cycle, err, ts = fields
        print("\n── PLC Status ───────────────────────────────────")
        print(f"  State:          {state}")
        print(f"  Cycle Count:    {int(cycle)}")
        print(f"  Error Code:     0x{err}")
        print(f"  Timestamp:      {ts}")
        print()

    def do_ri(self, arg):
        """Read input word: ri <addr>"""
        self._request(f"RI{arg.strip()}")

    def do_ro(self, arg):
        """Read output word: ro <addr>"""
        self._request(f"RO{arg.strip()}")

    def do_rr(self, arg):
        """Read register word: rr <addr>"""
        self._request(f"RR{arg.strip()}")

    def do_raw(self, arg):
        """Send a raw protocol request: raw <text>"""
        self._request(arg)

    # ── Management Commands ──────────────────────────────────

    def do_snapshot(self, arg):
        """Show the full process image: snapshot [inputs|outputs|registers]"""
        try:
            doc = self.client.fetch_snapshot()
        except (OSError, ValueError) as exc:
            print(f"Communication error: {exc}")
            return
        section = arg.strip().lower()
        if section:
            if section not in doc:
                print(f"Unknown section: {section}")
                return
            doc = doc[section]
        print(json.dumps(doc, indent=2))

    def do_watch(self, arg):
        """Print the STATUS line every second: watch [count]"""
        try:
            count = int(arg) if arg.strip() else 10
        except ValueError:
            print("Usage: watch [count]")
            return
        for _ in range(count):
            self._request("STATUS")
            time.sleep(1.0)

    # ── Utility ──────────────────────────────────────────────

    def do_quit(self, arg):
        """Exit the console: quit"""
        return True

    def do_exit(self, arg):
        """Exit the console: exit"""
        return self.do_quit(arg)

    do_EOF = do_quit

    def emptyline(self):
        pass

    def default(self, line):
        print(f"Unknown command: {line}. Type 'help' for available commands.")


def run_cli(client: PLCClient, command: Optional[list] = None):
    """Run one command, or the interactive console when none is given."""
    console = PLCConsole(client)
    if command:
        console.onecmd(" ".join(command))
        return
    try:
        console.cmdloop()
    except KeyboardInterrupt:
        print("\nInterrupted.")


def main(argv=None):
    """Entry point for standalone CLI usage."""
    parser = argparse.ArgumentParser(description="Legacy PLC operator console")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_CONTROL_PORT,
                        help="Control protocol port")
    parser.add_argument("--mgmt-port", type=int, default=DEFAULT_MGMT_PORT,
                        help="Management protocol port")
    parser.add_argument("--timeout", type=float, default=2.0)
    parser.add_argument("command", nargs=argparse.REMAINDER,
                        help="One-shot command (e.g. status, rr 20)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    client = PLCClient(args.host, args.port, args.mgmt_port, timeout=args.timeout)
    run_cli(client, args.command)
    return 0


if __name__ == "__main__":
    sys.exit(main())
