"""
Flask CLI commands for operators.

    flask --app wsgi new-intake [--vertical home_services]
    flask --app wsgi submissions [--status submitted]
"""

import click
from flask import Flask

from intake.core.exceptions import ValidationError


def register_commands(app: Flask):

    @app.cli.command("new-intake")
    @click.option("--vertical", default=None, help="Business vertical (default: DEFAULT_VERTICAL)")
    def new_intake(vertical):
        """Create a draft submission and print its resumable client link."""
        from intake.services.submission_service import create_submission

        try:
            sub = create_submission(vertical)
        except ValidationError as exc:
            raise click.ClickException(str(exc)) from exc
        click.echo(f"Submission {sub.id} created: /intake/{sub.access_token}")

    @app.cli.command("submissions")
    @click.option("--status", default=None, help="Only submissions in this status")
    def list_submissions_cmd(status):
        """Print one line per submission, newest first."""
        from intake.services.submission_service import list_submissions

        try:
            subs = list_submissions(status=status)
        except ValidationError as exc:
            raise click.ClickException(str(exc)) from exc
        for sub in subs:
            click.echo(f"{sub.id:>5}  {sub.status:<12} {sub.business_name or '(unnamed)'}")
