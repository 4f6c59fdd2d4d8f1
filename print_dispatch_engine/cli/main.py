"""
Main CLI entry point for the Print Dispatch Engine

Provides an operator command-line interface to inspect a configured fleet,
preview dispatch plans and run dispatch against simulated printers.
"""

import asyncio
import json
import sys
from typing import Any, Dict, List

import click

from ..core.config import load_config
from ..core.engine import DispatchEngine
from ..core.exceptions import PrintDispatchError
from ..models.dispatch import DispatchMode
from ..services.eligibility import select_eligible
from ..utils.logger import setup_logger


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True, dir_okay=False), help='Fleet configuration file (YAML)')
@click.option('--log-level', '-l', default=None, help='Log level (defaults to the configured level)')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.option('--json', 'as_json', is_flag=True, help='Print results as JSON')
@click.pass_context
def cli(ctx, config, log_level, verbose, as_json):
    """Print Dispatch Engine CLI"""

    # Ensure context object exists
    ctx.ensure_object(dict)

    try:
        fleet = load_config(config)
    except PrintDispatchError as e:
        click.echo(f"Error loading configuration: {e.message}", err=True)
        sys.exit(1)

    # Set up logging
    level = log_level or fleet.dispatch.log_level
    ctx.obj['logger'] = setup_logger(
        "print_dispatch_engine",
        level=level,
        structured=fleet.dispatch.structured_logging and not verbose
    )

    # Store configuration
    ctx.obj['fleet'] = fleet
    ctx.obj['verbose'] = verbose
    ctx.obj['json'] = as_json


@cli.command('eligible')
@click.pass_context
def eligible(ctx):
    """List eligible printers in dispatch order"""
    try:
        engine = _build_engine(ctx)
        printers = select_eligible(
            engine.printer_registry.list_printers(),
            engine.config.consumable_threshold
        )
        if ctx.obj['json']:
            _echo_json([p.to_dict() for p in printers])
        else:
            _display_printers_table([p.to_dict() for p in printers], ctx.obj['verbose'])
    except PrintDispatchError as e:
        click.echo(f"Error listing printers: {e.message}", err=True)
        sys.exit(1)


@cli.command('plan')
@click.pass_context
def plan(ctx):
    """Preview the next dispatch round without applying it"""
    try:
        engine = _build_engine(ctx)
        result = engine.plan()
        if ctx.obj['json']:
            _echo_json(result.to_dict())
            return

        if result.assignments:
            _display_assignments_table([a.to_dict() for a in result.assignments])
        else:
            click.echo(f"Nothing to dispatch ({result.reason.value})")
        click.echo(f"Waiting: {result.waiting_count}  Printing: {result.printing_count}")
    except PrintDispatchError as e:
        click.echo(f"Error planning dispatch: {e.message}", err=True)
        sys.exit(1)


@cli.command('sweep')
@click.option('--timeout', type=float, default=None, help='Give up waiting for prints after this many seconds')
@click.pass_context
def sweep(ctx, timeout):
    """Dispatch every waiting job using simulated printers"""

    async def _sweep():
        engine = None
        try:
            engine = _build_engine(ctx)
            await engine.set_mode(DispatchMode.MANUAL)
            await engine.start()
            result = await engine.dispatch_now_all(timeout=timeout)
            report = engine.get_report()

            if ctx.obj['json']:
                _echo_json({"sweep": result.to_dict(), "report": report.to_dict()})
                return

            _display_assignments_table([a.to_dict() for a in result.assignments])
            click.echo(f"Rounds: {result.rounds}")
            click.echo(f"Processed: {report.processed_count}")
            if result.still_waiting:
                click.echo(f"Still waiting: {', '.join(result.still_waiting)}")
            if result.exhausted:
                click.echo("No eligible printer can take the remaining jobs")
            if result.timed_out:
                click.echo("Timed out waiting for prints to finish")
            _display_notices(engine, ctx.obj['verbose'])

        except PrintDispatchError as e:
            click.echo(f"Error running sweep: {e.message}", err=True)
            sys.exit(1)
        finally:
            if engine is not None:
                await engine.stop()

    asyncio.run(_sweep())


@cli.command('run')
@click.option('--duration', type=float, default=10.0, show_default=True, help='Seconds to run auto mode')
@click.pass_context
def run(ctx, duration):
    """Run auto mode for a while using simulated printers"""

    async def _run():
        engine = None
        try:
            engine = _build_engine(ctx)
            await engine.set_mode(DispatchMode.AUTO)
            await engine.start()
            if not ctx.obj['json']:
                click.echo(f"Auto dispatch running for {duration:g}s "
                           f"(tick every {engine.config.tick_interval_seconds:g}s)")
            await asyncio.sleep(duration)
        except PrintDispatchError as e:
            click.echo(f"Error running auto mode: {e.message}", err=True)
            sys.exit(1)
        finally:
            if engine is not None:
                await engine.stop()

        report = engine.get_report()
        if ctx.obj['json']:
            _echo_json(report.to_dict())
        else:
            _display_report(report.to_dict())
            _display_notices(engine, ctx.obj['verbose'])

    asyncio.run(_run())


@cli.command('report')
@click.pass_context
def report(ctx):
    """Show job and printer counts for the configured fleet"""
    try:
        engine = _build_engine(ctx)
        current = engine.get_report()
        warnings = engine.reporting.consumable_warnings()

        if ctx.obj['json']:
            _echo_json({
                "report": current.to_dict(),
                "warnings": [w.to_dict() for w in warnings]
            })
            return

        _display_report(current.to_dict())
        for warning in warnings:
            click.echo(f"WARNING: {warning.message}")
        if ctx.obj['verbose']:
            _display_printers_table([p.to_dict() for p in engine.printer_registry.list_printers()], True)
    except PrintDispatchError as e:
        click.echo(f"Error building report: {e.message}", err=True)
        sys.exit(1)


def _build_engine(ctx) -> DispatchEngine:
    """Create an engine for the configured fleet"""
    return DispatchEngine.from_config(ctx.obj['fleet'])


def _echo_json(data: Any):
    click.echo(json.dumps(data, indent=2, default=str))


def _display_printers_table(printers: List[Dict[str, Any]], verbose: bool):
    """Display printers in table format"""
    if not printers:
        click.echo("No eligible printers")
        return

    if verbose:
        click.echo(f"{'Printer ID':<16} {'Name':<24} {'Health':<8} {'Paper%':<7} {'Ink%':<7} {'Prio':<5} {'Job':<14}")
        click.echo("-" * 85)
    else:
        click.echo(f"{'Printer ID':<16} {'Name':<24} {'Paper%':<7} {'Ink%':<7} {'Prio':<5}")
        click.echo("-" * 63)

    for printer in printers:
        paper = f"{printer['paper_level']:.0f}"
        ink = f"{printer['ink_level']:.0f}"
        if verbose:
            job = printer.get('current_job_id') or '-'
            click.echo(f"{printer['printer_id']:<16} {printer['name']:<24} {printer['health']:<8} "
                       f"{paper:<7} {ink:<7} {printer['priority']:<5} {job:<14}")
        else:
            click.echo(f"{printer['printer_id']:<16} {printer['name']:<24} {paper:<7} {ink:<7} {printer['priority']:<5}")


def _display_assignments_table(assignments: List[Dict[str, Any]]):
    """Display assignments in table format"""
    if not assignments:
        click.echo("No assignments")
        return

    click.echo(f"{'Job ID':<20} {'Printer ID':<20}")
    click.echo("-" * 41)
    for assignment in assignments:
        click.echo(f"{assignment['job_id']:<20} {assignment['printer_id']:<20}")


def _display_report(report: Dict[str, Any]):
    """Display dispatch report"""
    click.echo("Dispatch Report")
    click.echo("=" * 30)
    click.echo(f"Mode: {report['mode']} ({report['loop_state']})")
    click.echo(f"Jobs: {report['waiting_jobs']} waiting, {report['printing_jobs']} printing, "
               f"{report['completed_jobs']} completed")
    click.echo(f"Printers: {report['online_printers']} online, {report['eligible_printers']} eligible, "
               f"{report['total_printers']} total")
    click.echo(f"Processed: {report['processed_count']}")
    click.echo(f"Max concurrent jobs: {report['max_concurrent_jobs']}")


def _display_notices(engine: DispatchEngine, verbose: bool):
    """Display operator notices, newest first"""
    notices = engine.get_notices(None if verbose else 5)
    for notice in notices:
        click.echo(f"[{notice.level.value.upper()}] {notice.message}")


def main():
    """Main CLI entry point"""
    cli()


if __name__ == '__main__':
    main()
