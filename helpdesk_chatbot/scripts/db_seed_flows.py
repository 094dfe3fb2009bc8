"""
Database Seeder.

Run this script to populate the PostgreSQL database with the sample
chatbot flows defined in data/sample_flows.py.

Usage:
    python -m helpdesk_chatbot.scripts.db_seed_flows

Every flow definition is parsed before it is written, so a broken sample
stops the script instead of reaching the chatbot.
"""

from helpdesk_chatbot.data.sample_flows import SAMPLE_FLOWS
from helpdesk_chatbot.domain.parsing import parse_flow_definition
from helpdesk_chatbot.infrastructure.database.connection import engine, init_db
from helpdesk_chatbot.repositories.flow import PostgresFlowRepository


def seed_flows():
    print("Initializing Database Connection...")

    init_db(engine)
    repository = PostgresFlowRepository(engine)

    print(f"Found {len(SAMPLE_FLOWS)} flows to seed.")

    for flow_id, flow in SAMPLE_FLOWS.items():
        print(f"Processing flow: {flow.name} ({flow_id})")
        parse_flow_definition(flow.definition)

        # save_flow upserts on the flow id
        if repository.get_flow(flow_id):
            print("--> Updating existing record.")
        else:
            print("--> Creating new record.")
        repository.save_flow(flow)

    print("Flows seeding complete.")


if __name__ == "__main__":
    seed_flows()
