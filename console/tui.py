"""
Legacy PLC TUI Dashboard
=========================
Terminal dashboard using curses for live monitoring of a running
controller through its management port. Displays:

  - Device identity, run state, uptime
  - Process values (temperature, pressure, run enable)
  - Outputs (heater, alarm, heartbeat)
  - Configuration registers and error code

Refreshes at 1 Hz.
"""

import curses
import sys
import logging
import argparse

from console.cli import PLCClient, DEFAULT_HOST, DEFAULT_CONTROL_PORT, DEFAULT_MGMT_PORT

logger = logging.getLogger(__name__)

NORMAL, OK, WARN, ALARM, HEADER = range(5)


def dashboard_lines(doc: dict) -> list:
    """Render a management document as (text, style) lines."""
    info = doc["device_info"]
    status = doc["status"]
    inputs = doc["inputs"]
    outputs = doc["outputs"]
    regs = doc["registers"]

    lines = [
        ("=" * 60, HEADER),
        (f"{info['name']} v{info['version']} ({info['build']}) - Live Dashboard", HEADER),
        ("=" * 60, HEADER),
        ("", NORMAL),
    ]
    run_style = OK if info["status"] == "RUN" else WARN
    lines.append((f"STATE: {info['status']}   Cycles: {info['uptime_cycles']}   "
                  f"Device: {info['device_id']}", run_style))
    lines.append(("", NORMAL))

    lines.append(("── Inputs ──", HEADER))
    temp_style = ALARM if inputs["temperature_raw"] > regs["alarm_threshold"] else OK
    lines.append((f"  {'Temperature:':<20s} {inputs['temperature_raw']:>8d} raw", temp_style))
    lines.append((f"  {'Pressure:':<20s} {inputs['pressure_raw']:>8d} raw", NORMAL))
    enable_style = OK if inputs["run_enable"] else ALARM
    enable_text = "ENABLED" if inputs["run_enable"] else "E-STOP"
    lines.append((f"  {'Run Enable:':<20s} {enable_text:>8s}", enable_style))
    lines.append(("", NORMAL))

    lines.append(("── Outputs ──", HEADER))
    lines.append((f"  {'Heater:':<20s} {'ON' if outputs['heater'] else 'OFF':>8s}",
                  OK if outputs["heater"] else NORMAL))
    lines.append((f"  {'High Temp Alarm:':<20s} {'ACTIVE' if outputs['high_temp_alarm'] else 'CLEAR':>8s}",
                  ALARM if outputs["high_temp_alarm"] else OK))
    lines.append((f"  {'Heartbeat:':<20s} {'*' if outputs['heartbeat'] else '.':>8s}", NORMAL))
    lines.append(("", NORMAL))

    lines.append(("── Registers ──", HEADER))
    lines.append((f"  {'Setpoint:':<20s} {regs['temp_setpoint']:>8d}", NORMAL))
    lines.append((f"  {'Alarm Threshold:':<20s} {regs['alarm_threshold']:>8d}", NORMAL))
    lines.append((f"  {'Timer Preset:':<20s} {regs['timer_preset']:>8d}", NORMAL))
    lines.append(("", NORMAL))

    err_style = ALARM if status["error_code"] != "0x00" else OK
    lines.append((f"Errors: {status['error_code']} {' '.join(status['error_flags'])}", err_style))
    if status["last_error"]:
        lines.append((f"Last error: {status['last_error']}", WARN))
    lines.append((f"Updated: {doc['timestamp']}", NORMAL))
    return lines


def run_tui(client: PLCClient):
    """Launch the curses-based TUI dashboard."""
    try:
        curses.wrapper(_tui_main, client)
    except KeyboardInterrupt:
        pass


def _tui_main(stdscr, client: PLCClient):
    """Main TUI loop inside curses wrapper."""
    curses.curs_set(0)
    stdscr.timeout(1000)  # 1 second refresh

    styles = {NORMAL: curses.A_NORMAL, HEADER: curses.A_BOLD}
    if curses.has_colors():
        curses.start_color()
        curses.use_default_colors()
        curses.init_pair(1, curses.COLOR_GREEN, -1)
        curses.init_pair(2, curses.COLOR_YELLOW, -1)
        curses.init_pair(3, curses.COLOR_RED, -1)
        curses.init_pair(4, curses.COLOR_WHITE, -1)
        styles.update({
            OK: curses.color_pair(1),
            WARN: curses.color_pair(2),
            ALARM: curses.color_pair(3),
            HEADER: curses.color_pair(4) | curses.A_BOLD,
        })
    else:
        styles.update({OK: curses.A_NORMAL, WARN: curses.A_BOLD, ALARM: curses.A_BOLD})

    while True:
        key = stdscr.getch()
        if key in (ord('q'), ord('Q')):
            break

        try:
            lines = dashboard_lines(client.fetch_snapshot())
        except (OSError, ValueError, KeyError) as exc:
            lines = [(f"PLC not responding: {exc}", WARN)]

        stdscr.clear()
        height, width = stdscr.getmaxyx()
        for row, (text, style) in enumerate(lines[:height - 1]):
            stdscr.addstr(row, 0, text[:width - 1], styles[style])
        if height > 1:
            stdscr.addstr(height - 1, 0, "Q=Quit"[:width - 1], styles[HEADER])
        stdscr.refresh()


def main(argv=None):
    """Entry point for standalone TUI usage."""
    parser = argparse.ArgumentParser(description="Legacy PLC dashboard")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_CONTROL_PORT)
    parser.add_argument("--mgmt-port", type=int, default=DEFAULT_MGMT_PORT)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING,
        filename="plc_tui.log",
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    run_tui(PLCClient(args.host, args.port, args.mgmt_port))
    return 0


if __name__ == "__main__":
    sys.exit(main())
