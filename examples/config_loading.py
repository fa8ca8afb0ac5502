"""config_loading.py"""

from clisage import Clisage, CommandCatalog, loader

catalog = CommandCatalog(loader("mycli.yaml"))

if __name__ == "__main__":
    import asyncio

    command = asyncio.run(Clisage(catalog, print_only=True).run_async())
    if command:
        print(command)
