"""Cliente assíncrono da plataforma de consultas médicas MedConnect.

Exporta o container `MedConnectClient` e a factory `create_client`.
"""

from medconnect_client.client import MedConnectClient, create_client

__all__ = ["MedConnectClient", "create_client"]
