from evalexpr.cli.app import app

app()
