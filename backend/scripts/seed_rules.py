"""
Seed Rules Script - Creates indexes and the default approval rules
Run: python -m scripts.seed_rules
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from trade_approvals.repositories.mongo_client import create_indexes, close_connection
from trade_approvals.services.rule_catalog_service import RuleCatalogService
from trade_approvals.domain.rule_fields import describe_rule


def main():
    print("Creating indexes...")
    create_indexes()

    created = RuleCatalogService().seed_default_rules()
    if not created:
        print("Approval rules already exist. Skipping seed.")
    else:
        print(f"Created {len(created)} approval rules:")
        for rule in created:
            print(f"  [{rule.priority}] {rule.name} -> {', '.join(rule.required_approvers)}")
            print(f"      when {describe_rule(rule)}")

    close_connection()


if __name__ == "__main__":
    main()
