import os
from datetime import datetime

from . import config as app_config


def get_console_log_path(work_dir, now=None):
    """Returns the timestamped file QEMU writes HVC console output to."""
    now = now or datetime.now()
    return os.path.join(work_dir, now.strftime(app_config.CONSOLE_LOG_FORMAT))


def get_hvc_console_args(log_path):
    """
    Muxes stdio between a virtio console, the monitor and the serial port.
    Console output is copied into log_path; the guest gets no key input
    until the kernel's hvc0 is up.
    """
    mux = app_config.HVC_CHARDEV_ID
    return [
        "-chardev", f"stdio,id={mux},mux=on,logfile={log_path}",
        "-device", "virtio-serial,romfile=",
        "-device", f"virtconsole,chardev={mux}",
        "-monitor", f"chardev:{mux}",
        "-serial", f"chardev:{mux}",
    ]


def add_console_args(args, config):
    """Appends the console arguments and records the chosen console in config."""
    if config["serial"]:
        config["console"] = app_config.CONSOLE_SERIAL
        config["console_log"] = None
        args.extend(app_config.SERIAL_CONSOLE_ARGS)
    else:
        config["console"] = app_config.CONSOLE_HVC
        config["console_log"] = get_console_log_path(config["work_dir"])
        args.extend(get_hvc_console_args(config["console_log"]))
