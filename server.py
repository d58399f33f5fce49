import os

from ddtrace import patch

from idverify.server import create_app

patch(flask=True, requests=True, sqlalchemy=True)
if not (os.environ.get("DD_AGENT_HOST", None) and os.environ.get("DD_TRACE_AGENT_PORT", None)):
    print("WARNING: DD_AGENT_HOST or DD_TRACE_AGENT_PORT not set, traces will go to the default agent address.")

app = create_app()


@app.cli.command()
def create_table():
    """Create the database tables."""
    from idverify.server.utils.db.sql import create_table as _create_table
    _create_table()
    print("Tables created.")


@app.cli.command()
def test():
    """Run the unit tests."""
    import unittest
    tests = unittest.TestLoader().discover('tests', top_level_dir='.')
    unittest.TextTestRunner(verbosity=2).run(tests)


if __name__ == '__main__':
    print("You should not run this file. Instead, run `flask --app server run` or serve `server:app` with a WSGI "
          "server.")
