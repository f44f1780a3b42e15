from marketcycle import create_app

app = create_app()
