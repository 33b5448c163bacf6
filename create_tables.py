"""
Simple script to create the threads, messages, custom_models and credentials tables.
Run this once to set up the tables in your PostgreSQL database.

Usage: python create_tables.py
"""

from sqlalchemy import create_engine, inspect
from models import Base, Thread, Message, CustomModel, Credential  # Import models to register them
from database import DATABASE_URL

if __name__ == "__main__":
    print("Creating database tables...")
    engine = create_engine(DATABASE_URL)
    
    # Create all tables
    Base.metadata.create_all(bind=engine)
    
    # Verify tables were created
    existing = set(inspect(engine).get_table_names())
    for model in (Thread, Message, CustomModel, Credential):
        table_name = model.__tablename__
        if table_name in existing:
            print(f"✓ {table_name} table created successfully!")
        else:
            print(f"✗ Failed to create {table_name} table")
    
    engine.dispose()
