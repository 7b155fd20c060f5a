from trustnet.factory import create_app

# gunicorn entrypoint: gunicorn trustnet.main:app
app = create_app()
