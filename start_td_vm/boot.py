import os
import shutil
import sys

from . import config as app_config
from .logging_utils import debug_log, error


# --- Firmware Helpers ---

def get_host_cpu_mhz(cpuinfo_path="/proc/cpuinfo"):
    """Returns the first 'cpu MHz' value from cpuinfo, or None if unavailable."""
    try:
        with open(cpuinfo_path) as f:
            for line in f:
                if line.startswith("cpu MHz"):
                    return float(line.split(":", 1)[1])
    except (OSError, ValueError, IndexError) as e:
        debug_log(app_config.DEBUG_FILE, f"Could not read CPU frequency from {cpuinfo_path}: {e}")
    return None


def needs_explicit_tsc_freq(cpu_mhz):
    """TD guests need tsc-freq when the host reports below 1 GHz (MHz / 1024 < 1)."""
    return cpu_mhz is not None and cpu_mhz / 1024 < 1


def prepare_ovmf_vars_file(vars_path, template_path, work_dir):
    """
    Returns the per-VM variables file to hand to QEMU.

    When the shared template is selected, a private copy in the working
    directory is used instead, created from the template on first use.
    """
    if os.path.abspath(vars_path) != os.path.abspath(template_path):
        return vars_path

    local_vars = os.path.join(work_dir, app_config.OVMF_VARS_NAME)
    if not os.path.isfile(local_vars):
        if not os.path.isfile(template_path):
            error(f"Could not find {template_path}. Please install TDVF(Trusted Domain Virtual Firmware).")
        print(f"Create {local_vars} from template {template_path}")
        try:
            shutil.copyfile(template_path, local_vars)
        except OSError as e:
            error(f"Failed to create {local_vars}: {e}")
    return local_vars


def resolve_uefi_firmware(config):
    """Picks the OVMF code/vars files for 'td' and 'efi' VMs and checks they exist."""
    if config["debug"] and not config["ovmf_code_explicit"]:
        config["ovmf_code"] = app_config.OVMF_CODE_DEBUG
        print(f"Info: Using debug firmware {config['ovmf_code']}.")

    if not os.path.isfile(config["ovmf_code"]):
        error(f"Firmware code file {config['ovmf_code']} not exist. Please install TDVF or specify via option \"-o\"")

    config["ovmf_vars"] = prepare_ovmf_vars_file(config["ovmf_vars"], app_config.OVMF_VARS, config["work_dir"])
    if not os.path.isfile(config["ovmf_vars"]):
        error(f"Firmware vars file {config['ovmf_vars']} not exist. Please specify via option \"-a\"")


def check_legacy_bios(config):
    if not os.path.isfile(config["legacy_bios"]):
        error(f"{config['legacy_bios']} does not exist!")


# --- Argument Builders ---

def get_cpu_param(config):
    """Returns the -cpu value; TD guests on slow-TSC hosts get an explicit frequency."""
    cpu = app_config.CPU_MODEL
    if config["vm_type"] == app_config.VM_TYPE_TD and needs_explicit_tsc_freq(config.get("cpu_mhz")):
        cpu += f",{app_config.TD_TSC_FREQ}"
    return cpu


def get_machine_param(config):
    machine = app_config.MACHINE_TYPE
    if config["vm_type"] == app_config.VM_TYPE_TD:
        machine += f",{app_config.MACHINE_PARAMS_TD}"
    elif config["vm_type"] == app_config.VM_TYPE_EFI:
        machine += f",{app_config.MACHINE_PARAMS_EFI}"
    return machine


def add_firmware_args(args, config):
    """Appends the firmware and confidential-computing arguments for the VM type."""
    vm_type = config["vm_type"]
    if vm_type == app_config.VM_TYPE_TD:
        tdx_object = "tdx-guest,id=tdx"
        if config["debug"]:
            tdx_object += ",debug=on"
        args.extend([
            "-device", f"loader,file={config['ovmf_code']},id=fd0,config-firmware-volume={config['ovmf_vars']}",
            "-object", tdx_object,
        ])
    elif vm_type == app_config.VM_TYPE_EFI:
        args.extend([
            "-drive", f"if=pflash,format=raw,readonly=on,file={config['ovmf_code']}",
            "-drive", f"if=pflash,format=raw,file={config['ovmf_vars']}",
        ])
    elif vm_type == app_config.VM_TYPE_LEGACY:
        args.extend(["-bios", config["legacy_bios"]])
    else:
        error(f"Invalid {vm_type}, must be [{'|'.join(app_config.VM_TYPES)}]")


def get_kernel_cmdline(config):
    """Returns the kernel command line for direct boot."""
    if config.get("kernel_cmdline"):
        return config["kernel_cmdline"]
    if config["vm_type"] == app_config.VM_TYPE_TD:
        return app_config.KERNEL_CMDLINE_TD
    return app_config.KERNEL_CMDLINE_NON_TD


def add_boot_args(args, config):
    """
    Appends direct kernel boot arguments. Grub boot adds nothing: the
    guest firmware runs shim->grub->kernel from the image itself.
    """
    boot_type = config["boot_type"]
    if boot_type == app_config.BOOT_TYPE_DIRECT:
        args.extend(["-kernel", os.path.abspath(config["kernel"]), "-append", get_kernel_cmdline(config)])
    elif boot_type != app_config.BOOT_TYPE_GRUB:
        print(f"Invalid {boot_type}, must be [{'|'.join(app_config.BOOT_TYPES)}]", file=sys.stderr)
        sys.exit(1)
