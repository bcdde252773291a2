from stocktake import create_app

app = create_app()
