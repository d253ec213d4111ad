"""
Command-line entry point: congress-sync.

Every command reads its settings from the environment (see config.py) and
prints a JSON summary of what it did.
"""

import os
import json
import logging
from typing import Optional

import click

from congress_sync.config import (
    DEFAULT_BILLS_PER_CHUNK, DEFAULT_ROLL_CALLS_PER_CHUNK, SyncConfig
)
from congress_sync.etl.district_resolver import DistrictResolver
from congress_sync.etl.errors import SyncError
from congress_sync.etl.geocoders import CensusGeocoderClient, create_cicero_client
from congress_sync.etl.ingest import IngestionPipeline, run_ingestion
from congress_sync.etl.rate_limiter import RateLimiter
from congress_sync.etl.repository import EntityRepository
from congress_sync.etl.zip_district_loader import ZipDistrictLoader
from congress_sync.utils.database import init_db

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
MODE_CHOICE = click.Choice(['full', 'incremental'])


def _echo_json(data):
    click.echo(json.dumps(data, indent=2, default=str))


def _load_config(require_congress_key: bool = True) -> SyncConfig:
    try:
        return SyncConfig.from_env(require_congress_key=require_congress_key)
    except SyncError as e:
        raise click.ClickException(str(e))


def _pipeline(config: SyncConfig) -> IngestionPipeline:
    return IngestionPipeline.from_config(config, db=init_db(config.database_url))


@click.group()
@click.option('--log-level', default=None, help='Logging level (default: LOG_LEVEL or INFO)')
def cli(log_level: Optional[str]):
    """Synchronize congressional data into the relational store."""
    level = (log_level or os.getenv('LOG_LEVEL') or 'INFO').upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)


@cli.command('setup-db')
@click.option('--drop-existing', is_flag=True, help='Drop all tables before creating them')
def setup_db(drop_existing: bool):
    """Create the database schema."""
    config = _load_config(require_congress_key=False)
    db = init_db(config.database_url)
    if not db.test_connection():
        raise click.ClickException("Database connection failed")
    db.create_all(drop_existing=drop_existing)
    _echo_json({'success': True, 'dropped': drop_existing})


@cli.command('sync-members')
@click.option('--congress', type=int, help='Congress number (default: CONGRESS_NUMBER or current)')
@click.option('--force', is_flag=True, help='Ignore the 24 hour freshness window')
@click.option('--enrich-details', is_flag=True, help='Fetch each member detail record for extra identifiers')
@click.option('--deactivate-missing', is_flag=True, help='Mark members absent from this Congress inactive')
def sync_members(congress: Optional[int], force: bool, enrich_details: bool, deactivate_missing: bool):
    """Sync members of Congress."""
    config = _load_config()
    pipeline = _pipeline(config)
    result = pipeline.members.sync(congress or config.congress, force=force,
                                   enrich_details=enrich_details, deactivate_missing=deactivate_missing)
    _echo_json(result.to_dict())


@cli.command('sync-bills')
@click.option('--congress', type=int, help='Congress number (default: CONGRESS_NUMBER or current)')
@click.option('--mode', type=MODE_CHOICE, default='incremental', show_default=True)
@click.option('--offset', type=int, default=0, help='Resume offset from a previous chunk')
@click.option('--chunk-size', type=int, default=DEFAULT_BILLS_PER_CHUNK, show_default=True)
@click.option('--no-enrich', is_flag=True, help='Skip detail, summaries and subjects')
@click.option('--all-chunks', is_flag=True, help='Keep running chunks until the listing is exhausted')
def sync_bills(congress: Optional[int], mode: str, offset: int, chunk_size: int, no_enrich: bool, all_chunks: bool):
    """Sync bills, one chunk at a time."""
    config = _load_config()
    pipeline = _pipeline(config)
    congress = congress or config.congress
    if all_chunks:
        result = pipeline.sync_all_bills(congress, mode, chunk_size=chunk_size, enrich=not no_enrich)
    else:
        result = pipeline.bills.sync_chunk(congress, offset=offset, chunk_size=chunk_size,
                                           mode=mode, enrich=not no_enrich)
    _echo_json(result.to_dict())


@cli.command('sync-house-votes')
@click.option('--congress', type=int, help='Congress number (default: CONGRESS_NUMBER or current)')
@click.option('--mode', type=MODE_CHOICE, default='incremental', show_default=True)
@click.option('--offset', type=int, default=0, help='Resume offset into the roll-call list')
@click.option('--max-roll-calls', type=int, default=DEFAULT_ROLL_CALLS_PER_CHUNK, show_default=True)
def sync_house_votes(congress: Optional[int], mode: str, offset: int, max_roll_calls: int):
    """Sync one chunk of House roll calls."""
    config = _load_config()
    pipeline = _pipeline(config)
    result = pipeline.house_votes.sync_chunk(congress or config.congress, offset=offset,
                                             max_roll_calls=max_roll_calls, mode=mode)
    _echo_json(result.to_dict())


@cli.command('sync-senate-votes')
@click.option('--congress', type=int, help='Congress number (default: CONGRESS_NUMBER or current)')
@click.option('--mode', type=MODE_CHOICE, default='incremental', show_default=True)
@click.option('--session', 'start_session', type=click.IntRange(1, 2), help='Session to resume in')
@click.option('--roll-call', 'start_roll_call', type=int, help='Roll-call number to resume at')
@click.option('--max-roll-calls', type=int, default=DEFAULT_ROLL_CALLS_PER_CHUNK, show_default=True)
@click.option('--max-misses', type=int, default=3, show_default=True,
              help='Consecutive missing roll calls that end a session')
def sync_senate_votes(congress: Optional[int], mode: str, start_session: Optional[int],
                      start_roll_call: Optional[int], max_roll_calls: int, max_misses: int):
    """Sync one chunk of Senate roll calls."""
    config = _load_config()
    pipeline = _pipeline(config)
    result = pipeline.senate_votes.sync_chunk(congress or config.congress, start_session=start_session,
                                              start_roll_call=start_roll_call, max_roll_calls=max_roll_calls,
                                              mode=mode, max_consecutive_misses=max_misses)
    _echo_json(result.to_dict())


@cli.command('ingest')
@click.option('--congress', type=int, help='Congress number (default: CONGRESS_NUMBER or current)')
@click.option('--mode', type=MODE_CHOICE, default='incremental', show_default=True)
@click.option('--skip-members', is_flag=True)
@click.option('--skip-bills', is_flag=True)
@click.option('--skip-votes', is_flag=True)
@click.option('--max-roll-calls', type=int, default=DEFAULT_ROLL_CALLS_PER_CHUNK, show_default=True,
              help='Roll calls per vote chunk')
def ingest(congress: Optional[int], mode: str, skip_members: bool, skip_bills: bool, skip_votes: bool,
           max_roll_calls: int):
    """Run a complete ingestion pass, looping vote chunks until both chambers are done."""
    config = _load_config()
    pipeline = _pipeline(config)
    result = run_ingestion(pipeline, congress or config.congress, mode=mode,
                           skip_members=skip_members, skip_bills=skip_bills, skip_votes=skip_votes,
                           vote_max_roll_calls=max_roll_calls)
    _echo_json(result)


@cli.command('backfill-breakdowns')
def backfill_breakdowns():
    """Compute the party breakdown for roll calls that have none."""
    config = _load_config(require_congress_key=False)
    db = init_db(config.database_url)
    with db.get_session() as session:
        result = EntityRepository().backfill_party_breakdowns(session)
    _echo_json(result.to_dict())


@cli.command('load-zip-districts')
@click.option('--csv', 'csv_path', type=click.Path(exists=True, dir_okay=False),
              help='Local ZCCD CSV (default: download from GitHub)')
@click.option('--validate-only', is_flag=True, help='Check state codes without writing')
def load_zip_districts(csv_path: Optional[str], validate_only: bool):
    """Seed the ZIP district table from the ZCCD dataset."""
    config = _load_config(require_congress_key=False)
    db = init_db(config.database_url)
    _echo_json(ZipDistrictLoader(db).run(csv_path, validate_only=validate_only))


@cli.command('resolve-zip')
@click.argument('zip_code')
def resolve_zip(zip_code: str):
    """Resolve a ZIP code to its congressional district."""
    config = _load_config(require_congress_key=False)
    db = init_db(config.database_url)
    resolver = DistrictResolver(db, [
        CensusGeocoderClient(RateLimiter(config.census_interval_ms)),
        create_cicero_client(config.cicero_api_key, RateLimiter(config.cicero_interval_ms)),
    ])
    result = resolver.resolve(zip_code)
    if result is None:
        raise click.ClickException(f"Could not resolve ZIP code {zip_code}")
    _echo_json({'zip_code': zip_code, 'state_code': result.state_code,
                'district': result.district_number, 'source': result.source})


if __name__ == '__main__':
    cli()
