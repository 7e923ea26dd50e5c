"""
Shared fixtures. fake_cli writes a shell script that behaves like speedify_cli, printing canned
JSON for `state` and `show adapters`.
"""
import json
import os
import socket
import stat

import pytest

from speedifyexporter.parser import Adapter, DataUsage, SpeedifyState

# Output captured from speedify_cli 12.x on a machine with one wired and one Wi-Fi adapter
STATE_CONNECTED = b'{\n\t"state":\t"CONNECTED"\n}\n'

ADAPTERS_TWO = json.dumps([
    {
        "adapterID": "eth0",
        "description": "Ethernet",
        "name": "eth0",
        "state": "connected",
        "type": "Wired",
        "priority": "always",
        "connectedNetworkName": "",
        "dataUsage": {
            "usageMonthly": 52428800,
            "usageDaily": 1048576,
            "usageMonthlyLimit": 0,
            "usageMonthlyResetDay": 0,
            "usageDailyLimit": 0,
            "usageDailyBoost": 0,
            "overlimitRatelimit": 0,
        },
    },
    {
        "adapterID": "wlan0",
        "description": "Wi-Fi",
        "name": "wlan0",
        "state": "disconnected",
        "type": "Wi-Fi",
        "priority": "backup",
        "dataUsage": {
            "usageMonthly": 2147483648,
            "usageDaily": 0,
            "usageMonthlyLimit": 10737418240,
            "usageDailyLimit": 536870912,
            "usageDailyBoost": 104857600,
            "overlimitRatelimit": 1000000,
        },
    },
]).encode()

SCRIPT_TEMPLATE = """#!/bin/sh
case "$*" in
    "state") cat "{state}" ;;
    "show adapters") cat "{adapters}" ;;
    *) echo "unknown command: $*" >&2; exit 2 ;;
esac
{tail}
"""


@pytest.fixture
def fake_cli(tmp_path):
    """Factory returning the path of a fake speedify_cli executable"""

    def make(state: bytes = STATE_CONNECTED, adapters: bytes = ADAPTERS_TWO,
             exit_code: int = 0, delay: float = 0) -> str:
        state_file = tmp_path / "state.json"
        adapters_file = tmp_path / "adapters.json"
        state_file.write_bytes(state)
        adapters_file.write_bytes(adapters)
        tail = ""
        if delay:
            tail += f"exec sleep {delay}\n"
        if exit_code:
            tail += f'echo "speedify_cli failed" >&2\nexit {exit_code}\n'
        script = tmp_path / "speedify_cli"
        script.write_text(SCRIPT_TEMPLATE.format(state=state_file, adapters=adapters_file,
                                                 tail=tail))
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return make


class FakeProbe:
    """Stands in for SpeedifyCLI, returning fixed records"""

    def __init__(self, state: SpeedifyState = None, adapters=None):
        self._state = state or SpeedifyState()
        self._adapters = list(adapters or [])

    async def state(self) -> SpeedifyState:
        return self._state

    async def adapters(self):
        return list(self._adapters)


@pytest.fixture
def fake_probe():
    return FakeProbe


@pytest.fixture
def eth0_adapter():
    return Adapter(adapter_id="eth0", type="wired", priority="always", state="connected",
                   data_usage=DataUsage(usage_daily=1048576, usage_monthly=52428800))


@pytest.fixture
def unused_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def subprocess_env():
    """Environment for running the exporter as a module from a subprocess"""
    env = dict(os.environ)
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    env["PYTHONPATH"] = os.pathsep.join(p for p in (root, env.get("PYTHONPATH")) if p)
    return env


@pytest.fixture
def state_output():
    return STATE_CONNECTED


@pytest.fixture
def adapters_output():
    return ADAPTERS_TWO
