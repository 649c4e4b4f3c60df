"""
CLI (typer + rich): compone comandos y formatea la salida.

El core solo lanza excepciones; aquí se convierten en mensajes y códigos de salida.
"""
