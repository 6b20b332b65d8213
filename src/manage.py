"""Order fulfillment management CLI.

Usage:
    python src/manage.py demo              # Seed sample data and fulfill every order
    python src/manage.py demo --json       # Same, printing outcomes as JSON
"""

import argparse
import json
import sys


def _bootstrap():
    from fulfillment.config import FulfillmentSettings
    from fulfillment.domain import fulfillment
    from fulfillment.utils.logging import configure_logging

    configure_logging()
    fulfillment.init()
    return fulfillment, FulfillmentSettings.from_env()


def run_demo(as_json: bool = False) -> int:
    """Seed the sample data, fulfill each order and print the outcomes."""
    from fulfillment.pipeline import build_fulfillment_service
    from fulfillment.product.product import Product
    from fulfillment.seed import seed_demo_data

    domain, settings = _bootstrap()
    service = build_fulfillment_service(domain, settings)
    try:
        with domain.domain_context():
            seeded = seed_demo_data(domain)
            outcomes = {name: service.fulfill(order_id) for name, order_id in seeded["orders"].items()}

            if as_json:
                print(json.dumps({name: o.to_dict() for name, o in outcomes.items()}, indent=2))
            else:
                for name, outcome in outcomes.items():
                    if outcome.success:
                        print(f"{name:<8} completed  tracking={outcome.tracking_number}")
                    else:
                        print(f"{name:<8} failed     stage={outcome.stage} reason={outcome.reason}")

                print("\nStock levels:")
                repo = domain.repository_for(Product)
                for product_name, product_id in seeded["products"].items():
                    print(f"  {product_name:<22} {repo.get(product_id).stock_quantity}")
    finally:
        service.shutdown()

    return 0


def main():
    parser = argparse.ArgumentParser(description="Order fulfillment management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    demo_parser = subparsers.add_parser("demo", help="Seed sample data and fulfill every order")
    demo_parser.add_argument("--json", action="store_true", help="Print outcomes as JSON")

    args = parser.parse_args()

    if args.command == "demo":
        sys.exit(run_demo(as_json=args.json))


if __name__ == "__main__":
    main()
