"""Main CLI application using Cyclopts."""

import cyclopts

from archivist.cli.commands import db, server, users

app = cyclopts.App(
    name="archivist",
    help="Archivist - ownership-scoped record store",
)

app.command(server.serve, name="serve")
app.command(db.init_db, name="init-db")
app.command(users.token, name="token")
app.command(users.delete_user, name="delete-user")


if __name__ == "__main__":
    app()
