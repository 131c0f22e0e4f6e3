"""
Flask CLI commands.

Commands:
- flask init-db: Create the database tables
- flask create-user: Create a sales or admin user
"""

import click
from quotedesk.database import create_all, get_session
from quotedesk.models import AppUser, Branch, UserRole


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create every table that does not exist yet."""
        create_all()
        click.echo(click.style('Database tables created.', fg='green'))

    @app.cli.command('create-user')
    @click.option('--username', prompt=True, help='Login name')
    @click.option('--full-name', default=None, help='Display name')
    @click.option('--email', default=None, help='Email address')
    @click.option('--mobile', default=None, help='Mobile number')
    @click.option('--role', type=click.Choice([r.value for r in UserRole]), default=UserRole.SALES.value)
    @click.option('--branch-id', type=int, default=None, help='Branch the user quotes for')
    def create_user(username, full_name, email, mobile, role, branch_id):
        """Create a user able to issue quotations."""
        db_session = get_session()
        existing = db_session.query(AppUser).filter_by(username=username).first()
        if existing:
            click.echo(click.style(f'A user named {username} already exists.', fg='red'))
            return

        if branch_id is not None and not db_session.query(Branch).filter_by(id=branch_id).first():
            click.echo(click.style(f'Branch {branch_id} does not exist.', fg='red'))
            return

        try:
            user = AppUser(
                username=username,
                full_name=full_name,
                email=email,
                mobile=mobile,
                role=role,
                branch_id=branch_id
            )
            db_session.add(user)
            db_session.commit()

            click.echo(click.style('User created.', fg='green', bold=True))
            click.echo(f'   Username: {username}')
            click.echo(f'   ID: {user.id}')
            if branch_id is None:
                click.echo('   Note: users without a branch cannot create quotations.')

        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Error creating user: {str(e)}', fg='red'))
