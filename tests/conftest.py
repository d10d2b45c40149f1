"""
Shared fixtures for the microshell test suite
"""
import io

import pytest

from microshell.chain_builder import ChainBuilder
from microshell.chain_executor import ChainExecutor
from microshell.microshell import MicroShell
from microshell.process_launcher import ProcessLauncher


@pytest.fixture
def diagnostics():
    return io.StringIO()


@pytest.fixture
def builder(diagnostics):
    return ChainBuilder(diagnostics=diagnostics)


@pytest.fixture
def launcher():
    launcher = ProcessLauncher()
    yield launcher
    launcher.wait_background()


@pytest.fixture
def executor(launcher):
    return ChainExecutor(launcher)


@pytest.fixture
def shell(diagnostics):
    shell = MicroShell(diagnostics=diagnostics)
    yield shell
    shell.launcher.wait_background()
