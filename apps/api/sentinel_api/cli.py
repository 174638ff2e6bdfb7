"""CLI commands for the NoiseSentinel Chain API."""

import click

from sentinel_api.db.seed import seed_all
from sentinel_api.db.session import SessionLocal
from sentinel_api.evidence.service import EmissionReadingService


@click.group()
def cli():
    """NoiseSentinel Chain API CLI."""
    pass


@cli.command()
def seed():
    """Seed demo registry data and API keys."""
    click.echo("Seeding initial data...")
    db = SessionLocal()
    try:
        seed_all(db)
        click.echo("✓ Seed data created.")
    except Exception as e:
        click.echo(f"✗ Error seeding data: {e}", err=True)
        db.rollback()
        raise SystemExit(1)
    finally:
        db.close()


@cli.command("verify-readings")
@click.option("--batch-size", default=500, show_default=True, help="Readings per query batch.")
def verify_readings(batch_size: int):
    """Re-verify every stored emission reading and flag mismatches."""
    db = SessionLocal()
    try:
        result = EmissionReadingService(db).verify_all(batch_size=batch_size)
    finally:
        db.close()

    click.echo(f"Checked {result['checked']} readings.")
    if result["flagged"]:
        click.echo(f"✗ Signature mismatch on readings: {', '.join(map(str, result['flagged']))}", err=True)
        raise SystemExit(1)
    click.echo("✓ All readings verified.")


if __name__ == "__main__":
    cli()
