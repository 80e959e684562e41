#!/usr/bin/env python3
"""
Aninode Graph Engine - Command Line Entry Point

Loads a graph document, reconciles its property bindings and reports on
it without a GUI.

Usage:
    python main.py graph.json
    python main.py graph.json --routes          # Print wire paths
    python main.py graph.json -o synced.json    # Write the reconciled graph
    python main.py graph.json --debug           # Enable debug logging
"""

import sys
import logging
import argparse
from pathlib import Path

from PyQt6.QtCore import QCoreApplication

from canvas import GraphEditor
from services.settings_manager import SettingsManager


def setup_logging(debug: bool = False):
    """Configure logging for the application."""
    level = logging.DEBUG if debug else logging.INFO

    # Create formatter
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # Log startup message
    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized at {'DEBUG' if debug else 'INFO'} level")


def setup_application() -> QCoreApplication:
    """Create the Qt core application (signals only, no widgets)."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName("Aninode Graph")
    app.setApplicationVersion("0.1.0")
    app.setOrganizationName("aninode")
    return app


def print_summary(editor: GraphEditor):
    store = editor.store
    report = editor.last_sync
    bindings = sum(len(n.bound_props) for n in store.nodes.values())

    print(f"Nodes:       {len(store.nodes)}")
    print(f"Connections: {len(store.connections)}")
    print(f"Bindings:    {bindings}")
    print(f"Sync:        {len(report.updated)} updated in {report.passes} pass(es), "
          f"{'converged' if report.converged else 'NOT converged'}")
    if report.skipped:
        print(f"Skipped:     {', '.join(f'{nid}.{key}' for nid, key in report.skipped)}")

    colors = editor.node_colors()
    for node in store.nodes.values():
        color = colors.get(node.id, "-")
        print(f"  {node.id:<12} {node.kind.name:<10} {color:<8} {node.label}")


def print_routes(editor: GraphEditor):
    for path in editor.routes():
        print(f"{path.connection_id} {path.kind.name}: {path.d}")


def main():
    """Main entry point."""
    # Parse command line arguments
    parser = argparse.ArgumentParser(description='Aninode graph engine')
    parser.add_argument('graph', type=Path, help='Graph document (JSON)')
    parser.add_argument('--routes', action='store_true', help='Print wire paths')
    parser.add_argument('--output', '-o', type=Path, help='Write the reconciled graph here')
    parser.add_argument('--settings', type=str, help='Settings file to use instead of the default')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    args = parser.parse_args()

    # Setup logging
    setup_logging(debug=args.debug)

    setup_application()

    settings = SettingsManager(args.settings)
    editor = GraphEditor(settings.settings)
    if not editor.open_document(args.graph):
        return 1
    settings.add_recent_file(str(args.graph.resolve()))

    editor.fit_view()
    print_summary(editor)
    if args.routes:
        print_routes(editor)

    if args.output and not editor.save_document(args.output):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
