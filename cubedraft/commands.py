import os

import click
from flask import current_app
from flask.cli import with_appcontext

from cubedraft import db
from cubedraft.cubes import loader
from cubedraft.cubes.builders import CubeBuildError
from cubedraft.cubes.builders.hearthstone import CUBE_ID as HEARTHSTONE_CUBE_ID, build_hearthstone_cube
from cubedraft.cubes.builders.images import download_cube_images
from cubedraft.cubes.builders.scryfall import build_mtg_cube
from cubedraft.cubes.builders.ygoprodeck import build_ygo_cube
from cubedraft.services.drafts.sessions import cleanup_old_sessions


def _cube_output(output, cube_id):
    return output or os.path.join(current_app.config['CUBES_DIR'], f"{cube_id}.json")


def _report(result):
    loader.clear_cache()
    click.echo(f"Saved {result['card_count']} cards to {result['path']}")
    if result['failed']:
        click.echo(f"{len(result['failed'])} card(s) failed to fetch:")
        for item in result['failed']:
            click.echo(f"  - {item}")


@click.command('db-reset')
@with_appcontext
def db_reset_command():
    """Drops, recreates, and seeds the database."""
    from cubedraft.models import User
    db.drop_all()
    db.create_all()

    for username in ['testuser1', 'testuser2', 'testuser3']:
        user = User(username=username)
        user.set_password('password')
        db.session.add(user)

    db.session.commit()
    click.echo('Database has been reset and seeded!')


@click.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_command():
    """Deletes finished, abandoned and cancelled drafts past their retention window."""
    counts = cleanup_old_sessions()
    click.echo(
        f"Deleted {counts['completed']} completed, {counts['abandoned']} abandoned "
        f"and {counts['cancelled']} cancelled session(s)."
    )


@click.group('build-cube')
def build_cube_group():
    """Build cube JSON files from public card databases."""


@build_cube_group.command('ygo')
@click.argument('csv_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Cube JSON path (default: CUBES_DIR/<csv name>.json)')
@click.option('--name', help='Display name of the cube')
@with_appcontext
def build_ygo_command(csv_path, output, name):
    """Yu-Gi-Oh cube from an ID,Score (or ID,Name,Score) CSV via YGOPRODeck."""
    cube_id = os.path.splitext(os.path.basename(csv_path))[0]
    try:
        result = build_ygo_cube(csv_path, _cube_output(output, cube_id), name=name)
    except CubeBuildError as exc:
        raise click.ClickException(str(exc))
    _report(result)


@build_cube_group.command('mtg')
@click.argument('list_path', type=click.Path(exists=True, dir_okay=False))
@click.option('--cube-id', default='mtg-starter', show_default=True)
@click.option('--output', '-o', type=click.Path(dir_okay=False))
@click.option('--name', default="Planeswalker's Vault", show_default=True)
@with_appcontext
def build_mtg_command(list_path, cube_id, output, name):
    """Magic cube from a name,score list via Scryfall."""
    try:
        result = build_mtg_cube(list_path, _cube_output(output, cube_id), cube_id=cube_id, name=name)
    except CubeBuildError as exc:
        raise click.ClickException(str(exc))
    _report(result)


@build_cube_group.command('hearthstone')
@click.option('--output', '-o', type=click.Path(dir_okay=False))
@click.option('--size', default=360, show_default=True, type=int, help='Number of cards to select')
@with_appcontext
def build_hearthstone_command(output, size):
    """Hearthstone cube from HearthstoneJSON, scored by rarity and mechanics."""
    try:
        result = build_hearthstone_cube(_cube_output(output, HEARTHSTONE_CUBE_ID), target_size=size)
    except CubeBuildError as exc:
        raise click.ClickException(str(exc))
    _report(result)


@click.command('download-images')
@click.argument('cube_id')
@click.option('--dest', type=click.Path(file_okay=False), help='Image directory (default: IMAGES_DIR)')
@with_appcontext
def download_images_command(cube_id, dest):
    """Download card images for a Yu-Gi-Oh cube."""
    try:
        summary = download_cube_images(cube_id, dest or current_app.config['IMAGES_DIR'])
    except loader.CubeNotFound as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Downloaded: {summary['downloaded']}")
    click.echo(f"Skipped (already existed): {summary['skipped']}")
    click.echo(f"Failed: {summary['failed']}")
    for error in summary['errors']:
        click.echo(f"  - {error['card_id']}: {error['error']}")


def register_commands(flask_app):
    for command in (db_reset_command, cleanup_sessions_command, build_cube_group, download_images_command):
        flask_app.cli.add_command(command)
