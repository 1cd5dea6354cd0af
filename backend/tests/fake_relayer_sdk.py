"""Importable stand-in for the relayer SDK, used by the fallback tests."""

from types import SimpleNamespace

__initialized__ = False

SepoliaConfig = {"chainId": 11155111, "relayerUrl": "https://relayer.example.test"}


async def initSDK(*args, **kwargs):
    return True


def createInstance(config):
    return {"config": config}


Broken = SimpleNamespace(initSDK=initSDK, createInstance="not callable", SepoliaConfig=SepoliaConfig)
