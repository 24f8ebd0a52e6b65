from lixqa_client.cli import app

app()
