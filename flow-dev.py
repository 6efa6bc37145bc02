# Development server for the flow console using the in-memory local backend
from flow_lib.main import create_app, Config
from flow_lib.config.settings import StorageSettings
app = create_app(Config(settings=StorageSettings(), persist_selection=False))
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
