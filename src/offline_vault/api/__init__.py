# Vault API package - FastAPI backend for the local vault UI
