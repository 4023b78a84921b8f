"""Allow ``python -m flood_relay`` to start the relay."""

from flood_relay.main import run

if __name__ == "__main__":
    run()
