"""
End-to-end tests for the refact command line.

Each test writes a config and value files into a temporary directory and runs
main() the way the console script does.
"""

import json

import httpx
import pytest

import main as refactMain
from lib.page_probe import PageProbeClient
from lib.snapshot import BuiltinDiffRenderer, ExternalDiffRenderer

PAGE_URL = "https://example.jp/archives/1234?code=1"


def runCli(configPath, *args) -> int:
    return refactMain.main(["-c", str(configPath), *args])


# ============================================================================
# Record / Replay Scenarios
# ============================================================================


class TestRecordReplay:
    """Save, assert and clear through the command line."""

    def testSaveThenAssertUnchanged(self, writeConfig, writeValue, dataDir, capsys):
        configPath = writeConfig()
        valuePath = writeValue("value.json", '{"title": "Hello", "count": 3}')

        assert runCli(configPath, "--url", f"{PAGE_URL}&TEST=save", "--value-file", str(valuePath)) == 0
        assert runCli(configPath, "--url", f"{PAGE_URL}&TEST=assert", "--value-file", str(valuePath)) == 0

        assert capsys.readouterr().out == ""
        assert len(list(dataDir.iterdir())) == 1

    def testAssertReportsChangedField(self, writeConfig, writeValue, capsys):
        configPath = writeConfig()
        before = writeValue("before.json", '{"a": 1, "b": "x"}')
        after = writeValue("after.json", '{"a": 2, "b": "x"}')

        runCli(configPath, "--url", f"{PAGE_URL}&TEST=save", "--value-file", str(before))
        status = runCli(configPath, "--url", f"{PAGE_URL}&TEST=assert", "--value-file", str(after))

        out = capsys.readouterr().out
        assert status == 1
        assert out.startswith("[a]\n")
        assert "-2\n+1\n" in out
        assert "[b]" not in out

    def testAssertWithoutBaseline(self, writeConfig, writeValue, capsys):
        configPath = writeConfig()
        valuePath = writeValue("value.json", '{"a": 1}')

        status = runCli(configPath, "--url", f"{PAGE_URL}&TEST=assert", "--value-file", str(valuePath))

        assert status == 1
        assert capsys.readouterr().out.startswith("Baseline not found: ")

    def testClear(self, writeConfig, writeValue, dataDir, capsys):
        configPath = writeConfig()
        valuePath = writeValue("value.json", "[1, 2, 3]")
        runCli(configPath, "--url", f"{PAGE_URL}&TEST=save", "--value-file", str(valuePath))
        runCli(configPath, "--url", f"{PAGE_URL}&TEST=save", "--value-file", str(valuePath), "--suffix", "sp")

        status = runCli(configPath, "--url", "https://example.jp/?TEST=clear")

        assert status == 0
        assert capsys.readouterr().out == "clear\n"
        assert list(dataDir.iterdir()) == []

    def testSuffixSelectsBaseline(self, writeConfig, writeValue):
        configPath = writeConfig()
        pcValue = writeValue("pc.json", '{"layout": "pc"}')
        spValue = writeValue("sp.json", '{"layout": "sp"}')

        runCli(configPath, "--url", f"{PAGE_URL}&TEST=save", "--value-file", str(pcValue), "--suffix", "pc")
        runCli(configPath, "--url", f"{PAGE_URL}&TEST=save", "--value-file", str(spValue), "--suffix", "sp")

        assertArgs = ["--url", f"{PAGE_URL}&TEST=assert", "--value-file", str(spValue)]
        assert runCli(configPath, *assertArgs, "--suffix", "sp") == 0
        assert runCli(configPath, *assertArgs, "--suffix", "pc") == 1

    def testNoCommandIsNoop(self, writeConfig, writeValue, dataDir):
        configPath = writeConfig()
        valuePath = writeValue("value.json", "1")

        assert runCli(configPath, "--url", PAGE_URL, "--value-file", str(valuePath)) == 0
        assert list(dataDir.iterdir()) == []

    def testDisabledIsNoop(self, writeConfig, writeValue, dataDir):
        configPath = writeConfig(enabled=False)
        valuePath = writeValue("value.json", "1")

        assert runCli(configPath, "--url", f"{PAGE_URL}&TEST=save", "--value-file", str(valuePath)) == 0
        assert list(dataDir.iterdir()) == []

    def testBrokenValueFileIsError(self, writeConfig, writeValue):
        configPath = writeConfig()
        valuePath = writeValue("value.json", "{broken")

        assert runCli(configPath, "--url", f"{PAGE_URL}&TEST=save", "--value-file", str(valuePath)) == 1

    def testMissingValueSourceIsError(self, writeConfig, dataDir):
        configPath = writeConfig()

        assert runCli(configPath, "--url", f"{PAGE_URL}&TEST=save") == 1
        assert runCli(configPath, "--url", f"{PAGE_URL}&TEST=assert") == 1
        assert list(dataDir.iterdir()) == []

    def testDisabledNeedsNoValueSource(self, writeConfig, dataDir):
        configPath = writeConfig(enabled=False)

        assert runCli(configPath, "--url", f"{PAGE_URL}&TEST=save") == 0
        assert list(dataDir.iterdir()) == []


# ============================================================================
# Other Commands
# ============================================================================


class TestCliCommands:
    """Listing, config printing and argument validation."""

    def testList(self, writeConfig, writeValue, capsys):
        configPath = writeConfig()
        valuePath = writeValue("value.json", "1")
        runCli(configPath, "--url", f"{PAGE_URL}&TEST=save", "--value-file", str(valuePath))
        capsys.readouterr()

        assert runCli(configPath, "--list") == 0

        keys = capsys.readouterr().out.split()
        assert len(keys) == 1
        assert len(keys[0]) == 40

    def testPrintConfig(self, writeConfig, dataDir, capsys):
        configPath = writeConfig()

        assert runCli(configPath, "--print-config") == 0

        out = capsys.readouterr().out
        assert out.startswith("=== Refact Configuration ===")
        config = json.loads(out.split("\n", 2)[2])
        assert config["snapshot"]["data-dir"] == dataDir.as_posix()

    def testUrlIsRequired(self, writeConfig):
        configPath = writeConfig()

        with pytest.raises(SystemExit) as excInfo:
            runCli(configPath)

        assert excInfo.value.code == 2

    def testValueSourcesAreExclusive(self, writeConfig):
        configPath = writeConfig()

        with pytest.raises(SystemExit):
            runCli(configPath, "--url", PAGE_URL, "--value-file", "x.json", "--fetch")

    def testMissingConfigExits(self, tempDir):
        with pytest.raises(SystemExit):
            runCli(tempDir / "nope.toml", "--list")


# ============================================================================
# Application Wiring
# ============================================================================


class TestRefactApp:
    """RefactApp wiring and page fetching."""

    def testFetchUsesUrlWithoutControlKey(self, writeConfig):
        app = refactMain.RefactApp(configPath=str(writeConfig()))
        requestedUrls = []

        def handler(request: httpx.Request) -> httpx.Response:
            requestedUrls.append(str(request.url))
            return httpx.Response(200, json={"title": "Hello"})

        app.probeClient = PageProbeClient(transport=httpx.MockTransport(handler))

        assert app.run(f"{PAGE_URL}&TEST=save", fetch=True) == 0
        assert app.run(f"{PAGE_URL}&TEST=assert", fetch=True) == 0
        assert requestedUrls == [PAGE_URL, PAGE_URL]

    def testFetchIsSkippedForClear(self, writeConfig):
        app = refactMain.RefactApp(configPath=str(writeConfig()))

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("clear must not fetch")

        app.probeClient = PageProbeClient(transport=httpx.MockTransport(handler))

        assert app.run("https://example.jp/?TEST=clear", fetch=True) == 0

    def testFetchIsSkippedWhenDisabled(self, writeConfig):
        app = refactMain.RefactApp(configPath=str(writeConfig(enabled=False)))

        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("disabled snapshots must not fetch")

        app.probeClient = PageProbeClient(transport=httpx.MockTransport(handler))

        assert app.run(f"{PAGE_URL}&TEST=save", fetch=True) == 0
        assert app.run(f"{PAGE_URL}&TEST=assert", fetch=True) == 0
        assert list(app.store.rootDir.iterdir()) == []

    def testFetchFailureRaises(self, writeConfig):
        app = refactMain.RefactApp(configPath=str(writeConfig()))

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        app.probeClient = PageProbeClient(transport=httpx.MockTransport(handler))

        with pytest.raises(RuntimeError):
            app.run(f"{PAGE_URL}&TEST=save", fetch=True)

    def testPageClientSettingsFromConfig(self, writeConfig):
        configPath = writeConfig('[probe]\ntimeout = 3\nfollow-redirects = false\n[probe.headers]\nCookie = "a=b"\n')

        app = refactMain.RefactApp(configPath=str(configPath))

        assert app.probeClient.requestTimeout == 3
        assert app.probeClient.followRedirects is False
        assert app.probeClient.headers == {"Cookie": "a=b"}


class TestCreateDiffRenderer:
    """Diff renderer selection from the [diff] section."""

    def testBuiltin(self):
        assert isinstance(refactMain.createDiffRenderer({"renderer": "builtin"}), BuiltinDiffRenderer)

    def testExternalDefaults(self):
        renderer = refactMain.createDiffRenderer({})

        assert isinstance(renderer, ExternalDiffRenderer)
        assert renderer.command == ["diff", "-u"]
        assert renderer.scratchDir is None
        assert isinstance(renderer.fallback, BuiltinDiffRenderer)

    def testExternalWithoutFallback(self):
        renderer = refactMain.createDiffRenderer(
            {"renderer": "external", "command": ["colordiff", "-u"], "scratch-dir": "/tmp", "fallback": False}
        )

        assert renderer.command == ["colordiff", "-u"]
        assert renderer.scratchDir == "/tmp"
        assert renderer.fallback is None

    def testUnknownRenderer(self):
        with pytest.raises(ValueError):
            refactMain.createDiffRenderer({"renderer": "meld"})
