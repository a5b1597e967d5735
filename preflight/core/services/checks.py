"""
Host checks — is this machine ready for embedded/IoT CI work?

Split in two halves:

- ``gather_facts(ctx)`` probes the host (files, commands, network)
  and returns a plain ``HostFacts`` snapshot.
- ``run_checks(settings, facts)`` is pure: it judges the facts
  against the thresholds in ``Settings`` and returns a ``CheckReport``.

Required checks count towards the exit status; optional ones only
produce warnings.
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
import socket
from dataclasses import dataclass, field
from pathlib import Path

from preflight.core.config.loader import Settings
from preflight.core.context import PreflightContext
from preflight.core.models.report import CheckReport, CheckResult
from preflight.core.services.host_probe import (
    command_version,
    read_os_release,
    systemd_active,
    user_groups,
)

logger = logging.getLogger(__name__)

MIN_UBUNTU_MAJOR = 20
BASIC_TOOLS = ("git", "curl", "python3")
BUILD_TOOLS = ("gcc", "make")
QEMU_BINARIES = ("qemu-system-x86_64", "qemu-system-aarch64")

TIPS = [
    "After changing /etc/wsl.conf: in Windows PowerShell run:  wsl --shutdown",
    "Docker Desktop: Settings → Resources → WSL Integration → enable for this distro.",
    "Docker Engine: ensure systemd is enabled (see 'preflight wslconf set-systemd').",
    "USB/HIL: 'usbipd wsl list' / 'usbipd wsl attach --busid <id>' on Windows.",
]


@dataclass
class HostFacts:
    """Everything the checks look at, gathered once."""

    os_id: str = ""
    os_version: str = ""
    kernel_release: str = ""
    proc_version: str = ""
    systemd: bool = False

    dns_ok: bool = False
    https_ok: bool = False

    cpus: int = 1
    mem_gb: int = 0
    disk_free_gb: int = 0

    user: str = ""
    groups: list[str] = field(default_factory=list)
    docker_version: str | None = None
    docker_daemon: bool = False

    # tool name -> first line of its version output (None = not installed)
    tools: dict[str, str | None] = field(default_factory=dict)

    tty_devices: bool = False
    kvm: bool = False


# ── Gathering ───────────────────────────────────────────────────────


def _meminfo_gb(path: Path = Path("/proc/meminfo")) -> int:
    """Total RAM in GB, rounded up."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return 0
    for line in text.splitlines():
        if line.lower().startswith("memtotal:"):
            parts = line.split()
            if len(parts) >= 2 and parts[1].isdigit():
                kb = int(parts[1])
                return (kb + 1024 * 1024 - 1) // (1024 * 1024)
    return 0


def _dns_resolves(host: str) -> bool:
    try:
        socket.getaddrinfo(host, None)
    except OSError:
        return False
    return True


def gather_facts(ctx: PreflightContext) -> HostFacts:
    """Probe the host. Never raises; unknown facts keep their defaults."""
    settings = ctx.settings
    run = ctx.runner
    os_release = read_os_release()

    try:
        proc_version = Path("/proc/version").read_text(encoding="utf-8")
    except OSError:
        proc_version = ""

    try:
        disk_free_gb = shutil.disk_usage("/").free // (1024 ** 3)
    except OSError:
        disk_free_gb = 0

    https_ok = False
    if shutil.which("curl"):
        https_ok = bool(
            run(["curl", "-sS", "--max-time", "10", "-I", f"https://{settings.probe_host}"],
                timeout=20)["ok"]
        )

    tools: dict[str, str | None] = {}
    for tool in BASIC_TOOLS + BUILD_TOOLS:
        tools[tool] = command_version([tool, "--version"], run)
    tools["kubectl"] = command_version(["kubectl", "version", "--client"], run)
    tools["helm"] = command_version(["helm", "version", "--short"], run)
    for binary in QEMU_BINARIES:
        tools[binary] = command_version([binary, "--version"], run)

    runtime = ctx.containers
    docker_version = runtime.version() if runtime.is_available() else None
    docker_daemon = bool(docker_version is not None and runtime.daemon_reachable())

    facts = HostFacts(
        os_id=os_release.get("ID", ""),
        os_version=os_release.get("VERSION_ID", ""),
        kernel_release=platform.release(),
        proc_version=proc_version,
        systemd=systemd_active(),
        dns_ok=_dns_resolves(settings.probe_host),
        https_ok=https_ok,
        cpus=os.cpu_count() or 1,
        mem_gb=_meminfo_gb(),
        disk_free_gb=disk_free_gb,
        user=ctx.user,
        groups=user_groups(ctx.user, run),
        docker_version=docker_version,
        docker_daemon=docker_daemon,
        tools=tools,
        tty_devices=any(Path("/dev").glob("tty*")),
        kvm=Path("/dev/kvm").exists(),
    )
    logger.debug("Host facts: %s", facts)
    return facts


# ── Judging ─────────────────────────────────────────────────────────


def _check_distro(facts: HostFacts) -> CheckResult:
    if facts.os_id != "ubuntu":
        return CheckResult(
            name="distro", level="fail",
            message=(f"Not running Ubuntu (detected: {facts.os_id or 'unknown'}). "
                     "Ubuntu 20.04+ is recommended."),
        )
    major = facts.os_version.split(".", 1)[0]
    if not major.isdigit() or int(major) < MIN_UBUNTU_MAJOR:
        return CheckResult(
            name="distro", level="fail",
            message=f"Ubuntu {facts.os_version} detected; need Ubuntu 20.04+.",
        )
    return CheckResult(name="distro", level="pass", message=f"Ubuntu {facts.os_version} detected.")


def _check_wsl(facts: HostFacts) -> list[CheckResult]:
    release = facts.kernel_release
    on_wsl = "microsoft" in facts.proc_version.lower() or "microsoft" in release.lower()
    if not on_wsl:
        wsl = CheckResult(
            name="wsl", level="warn",
            message="Not running under WSL (fine if native/VM Linux).",
        )
    elif "WSL2" in release:
        wsl = CheckResult(name="wsl", level="pass", message=f"WSL2 kernel detected ({release}).")
    else:
        wsl = CheckResult(
            name="wsl", level="warn",
            message=f"WSL detected; kernel not explicitly WSL2 ({release}).",
        )

    if facts.systemd:
        systemd = CheckResult(name="systemd", level="pass", message="systemd appears active.")
    else:
        systemd = CheckResult(
            name="systemd", level="warn",
            message=("systemd not active. Use 'preflight wslconf set-systemd' "
                     "then 'wsl --shutdown' in Windows."),
        )
    return [wsl, systemd]


def _check_network(settings: Settings, facts: HostFacts) -> list[CheckResult]:
    host = settings.probe_host
    results = []
    if facts.dns_ok:
        results.append(CheckResult(name="dns", level="pass", message=f"DNS OK ({host})."))
    else:
        results.append(CheckResult(name="dns", level="fail", message=f"DNS cannot resolve {host}."))
    if facts.https_ok:
        results.append(CheckResult(
            name="https", level="pass", message=f"HTTPS reachability OK ({host})."))
    else:
        results.append(CheckResult(
            name="https", level="fail", message=f"Cannot reach https://{host} via curl."))
    return results


def _check_resources(settings: Settings, facts: HostFacts) -> list[CheckResult]:
    def judge(name: str, ok: bool, text: str, limit: str) -> CheckResult:
        return CheckResult(
            name=name,
            level="pass" if ok else "fail",
            message=f"{text} ({'>=' if ok else '<'} {limit}).",
        )

    return [
        judge("cpus", facts.cpus >= settings.min_cpus,
              f"CPU cores: {facts.cpus}", str(settings.min_cpus)),
        judge("memory", facts.mem_gb >= settings.min_mem_gb,
              f"RAM: ~{facts.mem_gb}GB", f"{settings.min_mem_gb}GB"),
        judge("disk", facts.disk_free_gb >= settings.min_disk_gb,
              f"Disk free on /: {facts.disk_free_gb}GB", f"{settings.min_disk_gb}GB"),
    ]


def _check_docker(settings: Settings, facts: HostFacts) -> list[CheckResult]:
    if facts.docker_version is None:
        return [CheckResult(
            name="docker", level="warn", message="docker CLI not found.")]

    results = [CheckResult(
        name="docker", level="pass", message=f"docker CLI found: {facts.docker_version}")]
    if facts.docker_daemon:
        results.append(CheckResult(
            name="docker_daemon", level="pass", message="Docker daemon reachable."))
    else:
        results.append(CheckResult(
            name="docker_daemon", level="warn",
            message="Docker daemon not reachable (enable Desktop or start Engine).",
        ))
    group = settings.docker_group
    if group in facts.groups:
        results.append(CheckResult(
            name="docker_group", level="pass",
            message=f"User '{facts.user}' is in '{group}' group."))
    else:
        results.append(CheckResult(
            name="docker_group", level="warn",
            message=f"User '{facts.user}' not in '{group}' group (you may need sudo).",
        ))
    return results


def _check_basics(facts: HostFacts) -> list[CheckResult]:
    results = []
    for tool in BASIC_TOOLS:
        version = facts.tools.get(tool)
        if version is None:
            results.append(CheckResult(name=tool, level="fail", message=f"{tool} not found."))
        else:
            results.append(CheckResult(name=tool, level="pass", message=f"{tool} present ({version})"))

    if all(facts.tools.get(t) is not None for t in BUILD_TOOLS):
        results.append(CheckResult(
            name="build-essential", level="pass",
            message="build-essential present (gcc/make found)."))
    else:
        results.append(CheckResult(
            name="build-essential", level="fail",
            message="build-essential not fully present (gcc/make missing)."))
    return results


def _check_optional_tools(facts: HostFacts) -> list[CheckResult]:
    results = []
    for tool in ("kubectl", "helm"):
        version = facts.tools.get(tool)
        if version is None:
            results.append(CheckResult(
                name=tool, level="warn", required=False, message=f"{tool} not found (optional)."))
        else:
            results.append(CheckResult(
                name=tool, level="pass", required=False, message=f"{tool} present ({version})"))

    if any(facts.tools.get(b) is not None for b in QEMU_BINARIES):
        results.append(CheckResult(
            name="qemu", level="pass", required=False,
            message="QEMU present (system targets available)."))
    else:
        results.append(CheckResult(
            name="qemu", level="warn", required=False, message="QEMU not found (optional)."))
    return results


def _check_devices(facts: HostFacts) -> list[CheckResult]:
    tty = CheckResult(
        name="tty", required=False,
        level="pass" if facts.tty_devices else "warn",
        message=("/dev/tty* present (serial interfaces)." if facts.tty_devices
                 else "No /dev/tty* visible. For HIL in WSL2, use usbipd-win."),
    )
    kvm = CheckResult(
        name="kvm", required=False,
        level="pass" if facts.kvm else "warn",
        message=("/dev/kvm present (KVM accel)." if facts.kvm
                 else "/dev/kvm not present (normal in WSL2). QEMU will use software emulation."),
    )
    return [tty, kvm]


def run_checks(settings: Settings, facts: HostFacts) -> CheckReport:
    """Judge ``facts`` against ``settings``. Pure: no I/O."""
    report = CheckReport()
    report.add(_check_distro(facts))
    for result in (
        _check_wsl(facts)
        + _check_network(settings, facts)
        + _check_resources(settings, facts)
        + _check_docker(settings, facts)
        + _check_basics(facts)
        + _check_optional_tools(facts)
        + _check_devices(facts)
    ):
        report.add(result)
    return report
