"""
Tests for host checks — judging HostFacts against Settings.
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from preflight.core.config.loader import Settings
from preflight.core.services.checks import HostFacts, run_checks


@pytest.fixture
def healthy() -> HostFacts:
    return HostFacts(
        os_id="ubuntu",
        os_version="22.04",
        kernel_release="5.15.153.1-microsoft-standard-WSL2",
        proc_version="Linux version 5.15 (Microsoft)",
        systemd=True,
        dns_ok=True,
        https_ok=True,
        cpus=8,
        mem_gb=16,
        disk_free_gb=100,
        user="alice",
        groups=["alice", "docker"],
        docker_version="Docker version 27.0.3",
        docker_daemon=True,
        tools={
            "git": "git version 2.34.1",
            "curl": "curl 7.81.0",
            "python3": "Python 3.10.12",
            "gcc": "gcc 11.4.0",
            "make": "GNU Make 4.3",
            "kubectl": "Client Version: v1.30.0",
            "helm": "v3.15.0",
            "qemu-system-x86_64": "QEMU emulator version 6.2.0",
        },
        tty_devices=True,
        kvm=True,
    )


def _by_name(report, name):
    return next(r for r in report.results if r.name == name)


class TestRunChecks:
    def test_healthy_host_passes_everything(self, healthy):
        report = run_checks(Settings(), healthy)
        assert report.ok
        assert report.required_failures == 0
        assert report.optional_misses == 0
        assert all(r.level == "pass" for r in report.results)

    @pytest.mark.parametrize("os_id,version", [("debian", "12"), ("ubuntu", "18.04"), ("ubuntu", "")])
    def test_distro_failures(self, healthy, os_id, version):
        report = run_checks(Settings(), replace(healthy, os_id=os_id, os_version=version))
        assert _by_name(report, "distro").level == "fail"
        assert report.required_failures == 1
        assert not report.ok

    def test_not_wsl_is_only_a_warning(self, healthy):
        facts = replace(healthy, kernel_release="6.8.0-generic", proc_version="Linux version 6.8")
        report = run_checks(Settings(), facts)
        assert _by_name(report, "wsl").level == "warn"
        assert report.ok

    def test_wsl1_style_kernel(self, healthy):
        facts = replace(healthy, kernel_release="4.4.0-19041-Microsoft")
        result = _by_name(run_checks(Settings(), facts), "wsl")
        assert result.level == "warn"
        assert "not explicitly WSL2" in result.message

    def test_network_failures_are_required(self, healthy):
        report = run_checks(Settings(), replace(healthy, dns_ok=False, https_ok=False))
        assert report.required_failures == 2
        assert "beetlebox.org" in _by_name(report, "dns").message

    def test_resource_thresholds_from_settings(self, healthy):
        settings = Settings(min_cpus=16, min_mem_gb=4, min_disk_gb=15)
        report = run_checks(settings, healthy)
        cpus = _by_name(report, "cpus")
        assert cpus.level == "fail"
        assert cpus.message == "CPU cores: 8 (< 16)."
        assert _by_name(report, "memory").message == "RAM: ~16GB (>= 4GB)."

    def test_docker_missing_is_warning(self, healthy):
        report = run_checks(Settings(), replace(healthy, docker_version=None))
        assert _by_name(report, "docker").level == "warn"
        assert not any(r.name == "docker_daemon" for r in report.results)
        assert report.ok

    def test_not_in_docker_group(self, healthy):
        report = run_checks(Settings(), replace(healthy, groups=["alice"]))
        assert _by_name(report, "docker_group").level == "warn"

    def test_missing_basics_are_required(self, healthy):
        tools = dict(healthy.tools, git=None, make=None)
        report = run_checks(Settings(), replace(healthy, tools=tools))
        assert _by_name(report, "git").level == "fail"
        assert _by_name(report, "build-essential").level == "fail"
        assert report.required_failures == 2

    def test_optional_misses_counted(self, healthy):
        tools = {k: v for k, v in healthy.tools.items() if k not in ("kubectl", "helm")}
        tools["qemu-system-x86_64"] = None
        facts = replace(healthy, tools=tools, tty_devices=False, kvm=False)
        report = run_checks(Settings(), facts)
        assert report.ok
        assert report.optional_misses == 5

    def test_aarch64_qemu_counts(self, healthy):
        tools = dict(healthy.tools)
        tools["qemu-system-x86_64"] = None
        tools["qemu-system-aarch64"] = "QEMU emulator version 8.2.2"
        report = run_checks(Settings(), replace(healthy, tools=tools))
        assert _by_name(report, "qemu").level == "pass"
