# n8n_gateway/__main__.py
from n8n_gateway.server import N8nGateway


def main() -> None:
    # Transport, host/port and the optional default session come from N8N_GATEWAY_* settings.
    N8nGateway().run()


if __name__ == "__main__":
    main()
