from bursar import create_app

app = create_app()
