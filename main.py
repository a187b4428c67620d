"""
Refact - record/replay snapshot testing for refactoring web pages.

Run a snapshot command for one request URL:

    python main.py -c refact.toml --url "https://example.jp/archives/1?TEST=save" --fetch
    python main.py -c refact.toml --url "https://example.jp/archives/1?TEST=assert" --fetch
    python main.py -c refact.toml --url "https://example.jp/?TEST=clear"
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

from internal.config.manager import ConfigManager
from lib.logging_utils import initLogging
from lib.page_probe import PageProbeClient
from lib.snapshot import (
    BuiltinDiffRenderer,
    DiffRenderer,
    DispatcherSettings,
    ExternalDiffRenderer,
    HaltProcessing,
    JsonValueConverter,
    RequestContext,
    SnapshotCommand,
    SnapshotDispatcher,
    SnapshotError,
    SnapshotStore,
)

# Configure basic logging first
logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=logging.INFO)
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def createDiffRenderer(config: Dict[str, Any]) -> DiffRenderer:
    """
    Create diff renderer from the ``[diff]`` config section.

    Raises:
        ValueError: If the renderer type is unknown
    """
    rendererType = config.get("renderer", "external")

    match rendererType:
        case "builtin":
            return BuiltinDiffRenderer()
        case "external":
            command = config.get("command") or ["diff", "-u"]
            fallback = BuiltinDiffRenderer() if config.get("fallback", True) else None
            return ExternalDiffRenderer(
                command=command,
                scratchDir=config.get("scratch-dir") or None,
                fallback=fallback,
            )
        case _:
            raise ValueError(f"Unknown diff renderer: {rendererType}")


class RefactApp:
    """Wires configuration, logging, store, dispatcher and probe together."""

    def __init__(self, configPath: str = "refact.toml", configDirs: Optional[List[str]] = None):
        """Initialize application with all components."""
        self.configManager = ConfigManager(configPath, configDirs)

        initLogging(self.configManager.getLoggingConfig())

        snapshotConfig = self.configManager.getSnapshotConfig()
        converter = JsonValueConverter(indent=2 if snapshotConfig.get("pretty-json", False) else None)
        self.store = SnapshotStore(snapshotConfig["data-dir"], converter=converter)

        self.settings = DispatcherSettings.fromConfig(snapshotConfig)
        self.dispatcher = SnapshotDispatcher(
            store=self.store,
            settings=self.settings,
            diffRenderer=createDiffRenderer(self.configManager.getDiffConfig()),
        )

        probeConfig = self.configManager.getProbeConfig()
        self.probeClient = PageProbeClient(
            requestTimeout=float(probeConfig.get("timeout", 10)),
            headers=probeConfig.get("headers", {}),
            followRedirects=bool(probeConfig.get("follow-redirects", True)),
        )

    def loadValue(self, valueFile: str) -> Any:
        """Load the value under test from a JSON file ("-" reads stdin)."""
        if valueFile == "-":
            return json.load(sys.stdin)
        with open(valueFile, "r", encoding="utf-8") as f:
            return json.load(f)

    def fetchValue(self, request: RequestContext) -> Any:
        """Fetch the page for request, without the control key, and return the probe result."""
        url = request.urlWithout(self.settings.controlKey)
        result = asyncio.run(self.probeClient.fetch(url))
        if result is None:
            raise RuntimeError(f"Failed to fetch {url}")
        return result

    def run(self, url: str, suffix: str = "", valueFile: Optional[str] = None, fetch: bool = False) -> int:
        """
        Run the snapshot command carried by url.

        Returns:
            Process exit status
        """
        request = RequestContext.fromUrl(url)
        command = SnapshotCommand.parse(request.get(self.settings.controlKey))

        value: Any = None
        # Gated dispatch is a no-op, so there is nothing to load or fetch
        if command in (SnapshotCommand.SAVE, SnapshotCommand.ASSERT) and self.dispatcher.isActive():
            if fetch:
                value = self.fetchValue(request)
            elif valueFile is not None:
                value = self.loadValue(valueFile)
            else:
                raise ValueError(f"'{command.value}' needs a value: pass --value-file or --fetch")

        try:
            ok = self.dispatcher.dispatch(value, request, suffix=suffix)
        except HaltProcessing as e:
            return int(e.code or EXIT_OK)

        if command is not None:
            logger.info(f"{command.value} {request.urlWithout(self.settings.controlKey)}: {'OK' if ok else 'fail'}")
        return EXIT_OK if ok else EXIT_FAILURE

    def listSnapshots(self) -> int:
        for key in self.store.list():
            print(key)
        return EXIT_OK


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Refact - record/replay snapshot testing for web pages")
    parser.add_argument(
        "-c",
        "--config",
        default="refact.toml",
        help="Path to configuration file (default: refact.toml)",
    )
    parser.add_argument(
        "--config-dir",
        action="append",
        help="Directory to search for .toml config files recursively (can be specified multiple times)",
    )
    parser.add_argument(
        "--print-config",
        action="store_true",
        help="Pretty-print loaded configuration and exit",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List stored baseline keys and exit",
    )
    parser.add_argument(
        "--url",
        help="Request URL including the control key, e.g. https://example.jp/p?TEST=save",
    )
    parser.add_argument(
        "--suffix",
        default="",
        help="Disambiguation suffix for requests sharing one URL (e.g. pc, sp)",
    )
    valueGroup = parser.add_mutually_exclusive_group()
    valueGroup.add_argument(
        "--value-file",
        help="JSON file with the value under test ('-' for stdin)",
    )
    valueGroup.add_argument(
        "--fetch",
        action="store_true",
        help="Fetch the URL (control key removed) and use the response as the value",
    )
    args = parser.parse_args(argv)

    if not (args.print_config or args.list) and not args.url:
        parser.error("--url is required unless --print-config or --list is given")

    # Convert relative paths to absolute paths
    args.config = os.path.abspath(args.config)
    if args.config_dir:
        args.config_dir = [os.path.abspath(dir_path) for dir_path in args.config_dir]

    return args


def prettyPrintConfig(config_manager: ConfigManager):
    """Pretty-print the loaded configuration."""
    print("=== Refact Configuration ===")
    print()

    try:
        print(json.dumps(config_manager.config, indent=2, ensure_ascii=False, sort_keys=True))
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not serialize config as JSON: {e}")
        for key, value in sorted(config_manager.config.items()):
            print(f"{key}: {value}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)

    try:
        if args.print_config:
            prettyPrintConfig(ConfigManager(args.config, args.config_dir))
            return EXIT_OK

        app = RefactApp(configPath=args.config, configDirs=args.config_dir)
        if args.list:
            return app.listSnapshots()

        return app.run(args.url, suffix=args.suffix, valueFile=args.value_file, fetch=args.fetch)

    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return EXIT_FAILURE
    except (SnapshotError, RuntimeError, ValueError, OSError) as e:
        logger.error(f"Refact failed: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
