# --- Global Configuration & Executable Paths ---

# Path to the debug log file, if enabled via command line.
DEBUG_FILE = None

# Supported guest flavours: SeaBIOS, OVMF, and an Intel TDX trust domain.
VM_TYPE_LEGACY = "legacy"
VM_TYPE_EFI = "efi"
VM_TYPE_TD = "td"
VM_TYPES = [VM_TYPE_LEGACY, VM_TYPE_EFI, VM_TYPE_TD]
VM_TYPE = VM_TYPE_TD

# 'direct' passes -kernel/-append; 'grub' lets shim->grub->kernel run in the guest.
BOOT_TYPE_DIRECT = "direct"
BOOT_TYPE_GRUB = "grub"
BOOT_TYPES = [BOOT_TYPE_DIRECT, BOOT_TYPE_GRUB]
BOOT_TYPE = BOOT_TYPE_DIRECT

# The QEMU binary with TDX support, installed from the intel-mvp-tdx-qemu-kvm package.
QEMU_EXECUTABLE = "/usr/libexec/qemu-kvm"
# SeaBIOS image used by 'legacy' VMs.
LEGACY_BIOS = "/usr/share/qemu-kvm/bios.bin"
# TDVF firmware, installed from the intel-mvp-tdx-tdvf package.
OVMF_CODE = "/usr/share/qemu/OVMF_CODE.fd"
OVMF_CODE_DEBUG = "/usr/share/qemu/OVMF_CODE.debug.fd"
# Shared template; each VM gets its own writable copy in the working directory.
OVMF_VARS = "/usr/share/qemu/OVMF_VARS.fd"

# File names resolved against the working directory.
GUEST_IMAGE_NAME = "td-guest.qcow2"
KERNEL_NAME = "vmlinuz"
OVMF_VARS_NAME = "OVMF_VARS.fd"
CONSOLE_LOG_FORMAT = "vm_log_%Y-%m-%dT%H%M.log"

# The default number of virtual CPU cores and sockets for the guest system.
SMP_CORES = 1
SOCKETS = 1
# The default amount of RAM to allocate to the virtual machine.
MEMORY = "2G"

# Host port for the telnet monitor.
MONITOR_PORT = 9001
# Host port forwarded to the guest's SSH port.
FORWARD_PORT = 10026

KERNEL_CMDLINE_NON_TD = "root=/dev/vda3 rw selinux=0 console=hvc0"
KERNEL_CMDLINE_TD = KERNEL_CMDLINE_NON_TD

MAC_ADDRESS_PATTERN = r'^([0-9A-Fa-f]{2}:){5}[0-9A-Fa-f]{2}$'

# --- QEMU Command Fragments ---

BASE_ARGS = [
    "-accel", "kvm",
    "-name", "process=tdxvm,debug-threads=on",
]
# Appended after -smp/-m.
BASE_DEVICE_ARGS = ["-vga", "none", "-monitor", "pty", "-no-hpet", "-nodefaults"]

CPU_MODEL = "host,-kvm-steal-time,pmu=off"
# Hosts whose TSC reports below 1 GHz (MHz / 1024) need an explicit frequency in TD mode.
TD_TSC_FREQ = "tsc-freq=1000000000"

MACHINE_TYPE = "q35"
# 'pic=no' is only valid for TD guests.
MACHINE_PARAMS_TD = "pic=no,kernel_irqchip=split,kvm-type=tdx,confidential-guest-support=tdx"
MACHINE_PARAMS_EFI = "kernel_irqchip=split"

# --- Network Configuration ---

NETWORK_ID = "mynet0"
NETWORK_DEVICE = f"virtio-net-pci,netdev={NETWORK_ID}"
GUEST_SSH_PORT = 22

VSOCK_GUEST_CID = 3

# --- Console Configuration ---

CONSOLE_SERIAL = "serial"
CONSOLE_HVC = "hvc"

# In grub boot the serial console takes key input for the grub menu; make
# sure console=ttyS0 is in the guest's grub.cfg since there is no virtconsole.
SERIAL_CONSOLE_ARGS = ["-serial", "stdio"]

HVC_CHARDEV_ID = "mux"
