"""Motor de vida útil: registro, ledger de uso, clasificación y alertas.

El servicio se importa desde ``toollife_api.tool_life.service`` para no
crear un ciclo con ``toollife_api.notifications``.
"""
