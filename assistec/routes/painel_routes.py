# assistec/routes/painel_routes.py
from flask import Blueprint, current_app

from assistec.routes.respostas import _ok
from assistec.services.painel_service import resumo_painel

painel_bp = Blueprint("painel_bp", __name__, url_prefix="/api")


@painel_bp.get("/ping")
def ping():
    """Healthcheck simples."""
    return _ok(service="assistec")


@painel_bp.get("/painel/resumo")
def resumo():
    limite = current_app.config.get("ESTOQUE_BAIXO_LIMITE", 2)
    return _ok(resumo=resumo_painel(limite_estoque_baixo=limite))
