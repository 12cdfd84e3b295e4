import argparse
import os
import re

from . import boot, config as app_config, console, process
from .logging_utils import debug_log, error, warn


DESCRIPTION = """\
Launch QEMU-KVM to create a guest VM of one of the following types:
  legacy  non-TDX VM booting legacy SeaBIOS
  efi     non-TDX VM booting OVMF
  td      TDX trust domain booting TDVF via kvm-type=tdx,confidential-guest-support=tdx
"""

EPILOG = """\
Boot types:
  direct  pass the kernel via -kernel and its command line via -append
  grub    leave shim->grub->kernel to the EFI boot manager inside the image

To get a consistent TD_REPORT across power cycles keep the TD configuration
stable between launches, including the MAC address.
"""


def port_number(value):
    """argparse type for TCP ports."""
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port '{value}'")
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"port {port} out of range 1-65535")
    return port


def positive_int(value):
    """argparse type for CPU counts."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid count '{value}'")
    if number < 1:
        raise argparse.ArgumentTypeError(f"count must be at least 1, got {number}")
    return number


def is_valid_mac_address(mac):
    return re.fullmatch(app_config.MAC_ADDRESS_PATTERN, mac) is not None


def build_parser():
    parser = argparse.ArgumentParser(
        prog="start-td-vm", description=DESCRIPTION, epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-i", "--image", metavar="IMAGE", help=f"Guest image file. Default is {app_config.GUEST_IMAGE_NAME} under the working directory.")
    parser.add_argument("-k", "--kernel", metavar="KERNEL", help=f"Kernel file. Default is {app_config.KERNEL_NAME} under the working directory.")
    parser.add_argument("-t", "--vm-type", choices=app_config.VM_TYPES, default=app_config.VM_TYPE, help=f"VM type, default is '{app_config.VM_TYPE}'.")
    parser.add_argument("-b", "--boot-type", choices=app_config.BOOT_TYPES, default=app_config.BOOT_TYPE, help=f"Boot type, default is '{app_config.BOOT_TYPE}' which requires a kernel binary via -k.")
    parser.add_argument("-p", "--monitor-port", type=port_number, default=app_config.MONITOR_PORT, help="Monitor via telnet on this host port.")
    parser.add_argument("-f", "--forward-port", type=port_number, default=app_config.FORWARD_PORT, help="Host port for forwarding guest SSH.")
    parser.add_argument("-o", "--ovmf-code", metavar="OVMF_CODE", help="BIOS CODE firmware device file, for 'td' and 'efi' VM only.")
    parser.add_argument("-a", "--ovmf-vars", metavar="OVMF_VARS", default=app_config.OVMF_VARS, help="BIOS VARS template, for 'td' and 'efi' VM only.")
    parser.add_argument("-m", "--mac", metavar="11:22:33:44:55:66", help="MAC address, impacts TDX measurement RTMR.")
    parser.add_argument("-v", "--vsock", action="store_true", help="Enable vsock.")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable 'debug=on' for GDB guest and use the debug firmware build.")
    parser.add_argument("-s", "--serial", action="store_true", help="Use serial console instead of HVC console.")

    parser.add_argument("--memory", default=app_config.MEMORY, help="RAM for the VM.")
    parser.add_argument("--smp-cores", type=positive_int, default=app_config.SMP_CORES, help="Number of CPU cores.")
    parser.add_argument("--sockets", type=positive_int, default=app_config.SOCKETS, help="Number of CPU sockets.")
    parser.add_argument("--kernel-cmdline", help="Kernel command line for direct boot.")
    parser.add_argument("--work-dir", default=None, help="Directory holding the default image, kernel, OVMF_VARS copy and console logs. Default: current directory.")
    parser.add_argument("--dry-run", action="store_true", help="Print the QEMU command without launching it.")
    parser.add_argument("--debug-file", metavar="PATH", help="Write timestamped diagnostics to this file.")

    suppressed_args = {
        "qemu_executable": app_config.QEMU_EXECUTABLE, "legacy_bios": app_config.LEGACY_BIOS,
    }
    for arg, default_val in suppressed_args.items():
        cli_arg = f"--{arg.replace('_', '-')}"
        parser.add_argument(cli_arg, default=default_val, help=argparse.SUPPRESS)
    return parser


def validate_environment(config, parser):
    """
    Resolves defaults and checks every precondition for launching the VM.
    Aborts with an error message on the first missing file or bad value.
    """
    if not os.path.isfile(config["qemu_executable"]):
        error("Please install qemu-kvm which supports TDX.")

    config["work_dir"] = os.path.abspath(config["work_dir"] or os.getcwd())
    if not os.path.isdir(config["work_dir"]):
        error(f"Working directory {config['work_dir']} not exist.")

    config["image"] = config["image"] or os.path.join(config["work_dir"], app_config.GUEST_IMAGE_NAME)
    if not os.path.isfile(config["image"]):
        parser.print_usage()
        error(f"Guest image file {config['image']} not exist. Please specify via option \"-i\"")

    config["ovmf_code_explicit"] = config["ovmf_code"] is not None
    config["ovmf_code"] = config["ovmf_code"] or app_config.OVMF_CODE
    if config["vm_type"] in (app_config.VM_TYPE_TD, app_config.VM_TYPE_EFI):
        boot.resolve_uefi_firmware(config)

    if config["mac"] and not is_valid_mac_address(config["mac"]):
        error(f"Invalid MAC address: {config['mac']}")

    if config["vm_type"] == app_config.VM_TYPE_LEGACY:
        boot.check_legacy_bios(config)
    elif config["vm_type"] == app_config.VM_TYPE_TD:
        config["cpu_mhz"] = boot.get_host_cpu_mhz()

    if config["boot_type"] == app_config.BOOT_TYPE_DIRECT:
        config["kernel"] = config["kernel"] or os.path.join(config["work_dir"], app_config.KERNEL_NAME)
        if not os.path.isfile(config["kernel"]):
            parser.print_usage()
            error(f"Kernel image file {config['kernel']} not exist. Please specify via option \"-k\"")
    elif not config["serial"]:
        warn("Using HVC console for grub, could not accept key input in grub menu")

    debug_log(app_config.DEBUG_FILE, f"Resolved configuration: {config}")


def build_qemu_args(config):
    """Constructs the list of arguments for the QEMU command."""
    args = [config["qemu_executable"], *app_config.BASE_ARGS,
            "-smp", f"{config['smp_cores']},sockets={config['sockets']}", "-m", config["memory"],
            *app_config.BASE_DEVICE_ARGS,
            "-drive", f"file={os.path.abspath(config['image'])},if=virtio,format=qcow2",
            "-monitor", f"telnet:127.0.0.1:{config['monitor_port']},server,nowait"]

    boot.add_firmware_args(args, config)
    args.extend(["-cpu", boot.get_cpu_param(config), "-machine", boot.get_machine_param(config)])

    # A custom MAC address changes the TDX RTMR measurement.
    network_device = app_config.NETWORK_DEVICE
    if config["mac"]:
        network_device += f",mac={config['mac']}"
    args.extend([
        "-device", network_device,
        "-netdev", f"user,id={app_config.NETWORK_ID},hostfwd=tcp::{config['forward_port']}-:{app_config.GUEST_SSH_PORT}",
    ])

    if config["vsock"]:
        args.extend(["-device", f"vhost-vsock-pci,guest-cid={app_config.VSOCK_GUEST_CID}"])

    boot.add_boot_args(args, config)
    console.add_console_args(args, config)
    return args


def main(argv=None):
    """Parses command-line arguments and launches the VM."""
    parser = build_parser()
    args = parser.parse_args(argv)
    config = vars(args)

    debug_file = None
    if config["debug_file"]:
        try:
            debug_file = open(config["debug_file"], "a")
        except OSError as e:
            error(f"Could not open debug file {config['debug_file']}: {e}")
        app_config.DEBUG_FILE = debug_file

    try:
        validate_environment(config, parser)
        qemu_args = build_qemu_args(config)
        process.print_summary(config)
        return process.run_qemu(qemu_args, config)
    finally:
        if debug_file:
            app_config.DEBUG_FILE = None
            debug_file.close()
