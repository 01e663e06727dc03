"""
forter/cli.py

Operator commands for auditing settlements against a ledger snapshot.

Snapshots are JSON documents in the layout read by
forter.ledger.decoder.decode_snapshot.

Usage:
    forter settle snapshot.json --csv payouts.csv
    forter preview snapshot.json --pool 7 --choice agree --amount 50
    forter reputation snapshot.json 0xabc
    forter leaderboard snapshot.json --by points
"""

import json
import logging
import sys

import click
import pandas as pd

from .exceptions import SettlementError
from .ledger.audit import settlement_root
from .ledger.decoder import decode_snapshot
from .ledger.units import format_usdc, parse_usdc
from .models import Choice, PoolState
from .protocol.reputation import SORT_KEYS
from .protocol.settlement import LedgerIndex, SettlementView
from .report import leaderboard_frame, settle_many, settlement_frame, summary_frame

logger = logging.getLogger("forter.cli")


def _load_index(path: str) -> LedgerIndex:
    with open(path) as fh:
        try:
            snapshot = json.load(fh)
        except json.JSONDecodeError as e:
            raise click.ClickException(f"{path} is not valid JSON: {e}")
    try:
        return decode_snapshot(snapshot)
    except (SettlementError, KeyError) as e:
        raise click.ClickException(f"could not decode {path}: {e}")


@click.group()
@click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
    default='WARNING',
    show_default=True,
    help='Logging verbosity',
)
def cli(log_level):
    """Forter settlement and reputation audit tools."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


@cli.command()
@click.argument('snapshot', type=click.Path(exists=True, dir_okay=False))
@click.option('--pool', 'pool_ids', multiple=True, help='Only settle these pool ids')
@click.option('--csv', 'csv_path', type=click.Path(dir_okay=False, writable=True),
              help='Write every payout line to this CSV file')
def settle(snapshot, pool_ids, csv_path):
    """Settle the resolved pools in SNAPSHOT and print their payouts."""
    index = _load_index(snapshot)
    view = SettlementView(index)

    selected = [
        pool for pool in index.pools.values()
        if pool.state is PoolState.RESOLVED and (not pool_ids or pool.pool_id in pool_ids)
    ]
    logger.info(f"Settling {len(selected)} resolved pools from {snapshot}")

    batch = settle_many(
        view.calculator,
        [(pool, index.stakes_for(pool.pool_id)) for pool in selected],
    )

    if batch.settlements:
        summary = summary_frame(batch.settlements)
        summary["root"] = [settlement_root(s)[:16] for s in batch.settlements]
        click.echo(summary.to_string(index=False))
    else:
        click.echo("No pools settled.")

    if csv_path and batch.settlements:
        payouts = pd.concat(
            [settlement_frame(s) for s in batch.settlements], ignore_index=True
        )
        payouts.to_csv(csv_path, index=False)
        logger.info(f"Wrote {len(payouts)} payout lines to {csv_path}")

    for pool_id, reason in batch.failures.items():
        click.echo(f"FAILED pool {pool_id}: {reason}", err=True)
    if not batch.ok:
        sys.exit(1)


@cli.command()
@click.argument('snapshot', type=click.Path(exists=True, dir_okay=False))
@click.option('--pool', 'pool_id', required=True, help='Active pool to stake on')
@click.option('--choice', type=click.Choice(['agree', 'disagree']), required=True,
              help='Agree or disagree with the pool creator')
@click.option('--amount', required=True, help='Stake in whole USDC, e.g. 50 or 12.5')
def preview(snapshot, pool_id, choice, amount):
    """Show the best case and the downside of a stake on an active pool."""
    index = _load_index(snapshot)
    view = SettlementView(index)
    try:
        result = view.preview_stake(index.pool(pool_id), Choice(choice), parse_usdc(amount))
    except (SettlementError, KeyError) as e:
        raise click.ClickException(str(e))

    outcome = "creator correct" if result.favorable_outcome else "creator wrong"
    click.echo(f"Pool {pool_id}: {choice} {format_usdc(result.amount)} USDC")
    click.echo(f"  max reward: {format_usdc(result.max_reward)} USDC (if {outcome})")
    click.echo(f"  max loss:   {format_usdc(result.max_loss)} USDC")
    click.echo(f"  break even: {'yes' if result.break_even else 'no'}")
    click.echo("  (estimate only, totals can move before resolution)")


@cli.command()
@click.argument('history', type=click.Path(exists=True, dir_okay=False))
@click.argument('participant')
@click.option('--csv', 'csv_path', type=click.Path(dir_okay=False, writable=True),
              help='Write the category breakdown to this CSV file')
def reputation(history, participant, csv_path):
    """Rebuild PARTICIPANT's reputation from the pools in HISTORY."""
    index = _load_index(history)
    view = SettlementView(index)
    try:
        record = view.summarize(participant)
    except SettlementError as e:
        raise click.ClickException(str(e))

    progress = view.accumulator.progress_to_next_tier(record)
    data = record.to_dict()
    data['progress'] = progress
    click.echo(json.dumps(data, indent=2))

    if csv_path:
        rows = [
            {'category': name, **stats.to_dict()}
            for name, stats in sorted(record.category_stats.items())
        ]
        pd.DataFrame(rows, columns=['category', 'total', 'correct', 'accuracy']).to_csv(
            csv_path, index=False
        )


@cli.command()
@click.argument('snapshot', type=click.Path(exists=True, dir_okay=False))
@click.option('--by', type=click.Choice(SORT_KEYS), default='accuracy', show_default=True)
@click.option('--csv', 'csv_path', type=click.Path(dir_okay=False, writable=True))
def leaderboard(snapshot, by, csv_path):
    """Rank every pool creator in SNAPSHOT."""
    index = _load_index(snapshot)
    view = SettlementView(index)
    creators = sorted({pool.creator for pool in index.pools.values()})
    try:
        records = [view.summarize(creator) for creator in creators]
    except SettlementError as e:
        raise click.ClickException(str(e))

    frame = leaderboard_frame(records, by=by)
    click.echo(frame.to_string(index=False) if len(frame) else "No analysts.")
    if csv_path:
        frame.to_csv(csv_path, index=False)


def main():
    cli()


if __name__ == '__main__':
    main()
