from __future__ import annotations

import click
from flask.cli import with_appcontext

from .models import User
from .tokens import issue_api_token


@click.command("issue-token")
@click.argument("email")
@with_appcontext
def issue_token_command(email: str) -> None:
    """Print a bearer token for an existing account."""
    user = User.query.filter_by(email=email.strip().lower()).first()
    if user is None:
        raise click.ClickException(f"No account with email {email!r}")
    if not user.is_admin:
        click.echo("Warning: account is not an admin; admin routes will reject it.", err=True)

    click.echo(issue_api_token(user.email))
