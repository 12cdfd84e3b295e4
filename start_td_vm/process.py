import subprocess
import sys

from . import config as app_config
from .logging_utils import debug_log


SUMMARY_RULE = "=" * 41


def format_command(args):
    """Renders the argument list one option per line, shell-quoted."""
    formatted_command = f"{args[0]} \\\n"
    formatted_command += " \\\n".join([f"    {subprocess.list2cmdline([arg])}" for arg in args[1:]])
    return formatted_command


def print_summary(config):
    """Prints the resolved VM configuration before launch."""
    rows = [
        ("Guest Image", config["image"]),
        ("Kernel binary", config["kernel"] if config["boot_type"] == app_config.BOOT_TYPE_DIRECT else ""),
        ("OVMF_CODE", config["ovmf_code"]),
        ("OVMF_VARS", config["ovmf_vars"]),
        ("VM Type", config["vm_type"]),
        ("Boot type", config["boot_type"]),
        ("Monitor port", config["monitor_port"]),
        ("Enable vsock", str(config["vsock"]).lower()),
        ("Enable debug", str(config["debug"]).lower()),
    ]
    if config.get("mac"):
        rows.append(("MAC Address", config["mac"]))
    rows.append(("Console", "Serial" if config["console"] == app_config.CONSOLE_SERIAL else "HVC"))
    if config.get("console_log"):
        rows.append(("Console log", config["console_log"]))

    print(SUMMARY_RULE)
    for label, value in rows:
        print(f"{label:<18}: {value}")
    print(SUMMARY_RULE)


def run_qemu(args, config):
    """Executes the QEMU command with the launcher's stdio and exits with its status."""
    print("--- Starting QEMU with the following command ---", flush=True)
    print(format_command(args), flush=True)
    print("-" * 50, flush=True)
    debug_log(app_config.DEBUG_FILE, f"QEMU command: {subprocess.list2cmdline(args)}")

    if config.get("dry_run"):
        print("Info: Dry run requested, not launching QEMU.")
        return 0

    try:
        process = subprocess.Popen(args)
        process.wait()
        debug_log(app_config.DEBUG_FILE, f"QEMU exited with status {process.returncode}")
        if process.returncode != 0:
            sys.exit(process.returncode)
    except FileNotFoundError:
        print(f"Error: QEMU executable '{args[0]}' not found.", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(130)
    return 0
