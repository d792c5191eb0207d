"""Serviços de domínio: ledger de estoque, validação e reconciliação de ordens."""
