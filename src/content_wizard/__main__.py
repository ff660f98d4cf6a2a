from content_wizard.cli import app

app()
