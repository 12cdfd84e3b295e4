"""Shared fixtures: a fake host with qemu-kvm, firmware files and a guest work dir."""

from types import SimpleNamespace

import pytest

from start_td_vm import boot, config as app_config, main


@pytest.fixture
def host(tmp_path, monkeypatch):
    """Creates the files a TDX host would have installed and points the defaults at them."""
    share = tmp_path / "share"
    share.mkdir()
    work = tmp_path / "vm"
    work.mkdir()

    files = SimpleNamespace(
        qemu=share / "qemu-kvm",
        bios=share / "bios.bin",
        code=share / "OVMF_CODE.fd",
        code_debug=share / "OVMF_CODE.debug.fd",
        vars_template=share / "OVMF_VARS.fd",
        image=work / "td-guest.qcow2",
        kernel=work / "vmlinuz",
        work=work,
    )
    files.vars_template.write_bytes(b"VARS-TEMPLATE")
    for path in (files.qemu, files.bios, files.code, files.code_debug, files.image, files.kernel):
        path.write_bytes(b"\0")

    monkeypatch.setattr(app_config, "QEMU_EXECUTABLE", str(files.qemu))
    monkeypatch.setattr(app_config, "LEGACY_BIOS", str(files.bios))
    monkeypatch.setattr(app_config, "OVMF_CODE", str(files.code))
    monkeypatch.setattr(app_config, "OVMF_CODE_DEBUG", str(files.code_debug))
    monkeypatch.setattr(app_config, "OVMF_VARS", str(files.vars_template))
    monkeypatch.setattr(boot, "get_host_cpu_mhz", lambda: 2100.0)
    return files


@pytest.fixture
def resolve(host):
    """Parses argv against the fake host and runs the precondition checks."""
    def _resolve(*argv):
        parser = main.build_parser()
        config = vars(parser.parse_args(["--work-dir", str(host.work), *argv]))
        main.validate_environment(config, parser)
        return config
    return _resolve
