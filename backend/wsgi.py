from stockrecon import create_app

app = create_app()
