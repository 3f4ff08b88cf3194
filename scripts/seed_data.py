#!/usr/bin/env python3
"""Seed development sites into DynamoDB."""

import argparse
import os
import sys

import boto3

# Add the shared layer to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src", "layers", "shared", "python"))

from conteo.models.site import Site


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed development sites")
    parser.add_argument("--stage", default="dev", help="Deployment stage")
    parser.add_argument("--region", default="us-east-1", help="AWS region")
    parser.add_argument("--domain", default="localhost", help="Domain of the demo shop")
    args = parser.parse_args()

    table_name = f"conteo-{args.stage}"
    print(f"Seeding data to table: {table_name}")

    dynamodb = boto3.resource("dynamodb", region_name=args.region)
    table = dynamodb.Table(table_name)

    sites = [
        Site(
            id="demo-shop",
            domain=args.domain,
            name="Demo Shop",
            conversion_tracking_enabled=True,
        ),
        Site(
            id="demo-blog",
            domain=f"blog.{args.domain}",
            name="Demo Blog",
            conversion_tracking_enabled=False,
        ),
    ]

    for site in sites:
        put_item(table, site, site.get_gsi1_keys())
        print(f"Created site: {site.name} ({site.domain})")
        print(f"  credential: {site.credential}")

    print("\nSeeding complete!")
    print("\nEmbed the tracker with:")
    print(f'  <script src="https://<api-host>/tracker.js" data-api-key="{sites[0].credential}"></script>')


def put_item(table, model, gsi_keys=None):
    """Put a model item into DynamoDB."""
    item = model.to_dynamodb()
    item.update(model.get_keys())

    if gsi_keys:
        item.update(gsi_keys)

    table.put_item(Item=item)


if __name__ == "__main__":
    main()
