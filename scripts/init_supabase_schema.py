#!/usr/bin/env python3
"""
Initialize the Support Desk schema in Supabase with a direct PostgreSQL connection
"""
import os
import psycopg2
from dotenv import load_dotenv

load_dotenv()

TABLES = ("tickets", "feedback")


def get_connection():
    """Get PostgreSQL connection using .env variables"""
    host = os.getenv("SUPABASE_DB_HOST")
    port = int(os.getenv("SUPABASE_DB_PORT", "6543"))
    database = os.getenv("SUPABASE_DB_NAME", "postgres")
    user = os.getenv("SUPABASE_DB_USER")
    password = os.getenv("SUPABASE_DB_PASSWORD")

    print(f"🔗 Connecting to: {host}:{port}")
    print(f"   Database: {database}")
    print(f"   User: {user}")

    return psycopg2.connect(
        host=host,
        port=port,
        database=database,
        user=user,
        password=password
    )


def create_schema(with_sample_data: bool = True):
    """Create tickets and feedback tables"""

    ddl_sql = """
    CREATE SEQUENCE IF NOT EXISTS ticket_number_seq;

    -- Tickets
    CREATE TABLE IF NOT EXISTS tickets (
        id TEXT PRIMARY KEY
            DEFAULT 'TKT-' || lpad(nextval('ticket_number_seq')::text, 3, '0'),
        subject TEXT NOT NULL,
        description TEXT NOT NULL,
        priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
        status TEXT NOT NULL DEFAULT 'open'
            CHECK (status IN ('open', 'in_progress', 'awaiting_info', 'closed', 'resolved')),
        email TEXT,
        file_url TEXT,
        file_name TEXT,
        ai_response TEXT,
        ai_response_generated_at TIMESTAMPTZ,
        email_notification_status TEXT NOT NULL DEFAULT 'pending'
            CHECK (email_notification_status IN ('pending', 'sent', 'failed')),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CHECK ((file_url IS NULL) = (file_name IS NULL))
    );

    -- Feedback (at most one row per ticket)
    CREATE TABLE IF NOT EXISTS feedback (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        ticket_id TEXT NOT NULL UNIQUE REFERENCES tickets(id) ON DELETE CASCADE,
        rating SMALLINT NOT NULL CHECK (rating BETWEEN 1 AND 5),
        comment TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );

    -- Keep updated_at current for writes from the AI and mail collaborators
    CREATE OR REPLACE FUNCTION touch_ticket_updated_at() RETURNS TRIGGER AS $$
    BEGIN
        NEW.updated_at = NOW();
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql;

    DROP TRIGGER IF EXISTS tickets_touch_updated_at ON tickets;
    CREATE TRIGGER tickets_touch_updated_at
        BEFORE UPDATE ON tickets
        FOR EACH ROW EXECUTE FUNCTION touch_ticket_updated_at();

    -- Indexes for performance
    CREATE INDEX IF NOT EXISTS idx_tickets_created_at ON tickets(created_at DESC);
    CREATE INDEX IF NOT EXISTS idx_tickets_status ON tickets(status);
    """

    sample_sql = """
    INSERT INTO tickets (subject, description, priority, status, email)
    VALUES
        ('VPN Connection Issues', 'VPN drops every 10-15 minutes with error 809.', 'high', 'open', 'alex@example.com'),
        ('Printer offline in Conference Room A', 'Print jobs queue but never print.', 'medium', 'in_progress', 'sam@example.com')
    ON CONFLICT DO NOTHING;
    """

    conn = None
    try:
        conn = get_connection()
        cur = conn.cursor()

        print("🔧 Creating database schema...")
        cur.execute(ddl_sql)
        conn.commit()
        print("✅ DDL executed successfully")

        if with_sample_data:
            print("📝 Inserting sample data...")
            cur.execute(sample_sql)
            conn.commit()
            print("✅ Sample data inserted")

        # Count records
        print("\n📊 Tables:")
        for table_name in TABLES:
            cur.execute(f"SELECT COUNT(*) FROM {table_name}")
            count = cur.fetchone()[0]
            print(f"  {table_name}: {count} records")

        cur.close()
        return True

    except Exception as e:
        print(f"❌ Error: {str(e)}")
        if conn:
            conn.rollback()
        return False
    finally:
        if conn:
            conn.close()


if __name__ == "__main__":
    import sys
    success = create_schema(with_sample_data="--no-sample-data" not in sys.argv)
    sys.exit(0 if success else 1)
