"""
Configuración y logging del proceso.
"""
