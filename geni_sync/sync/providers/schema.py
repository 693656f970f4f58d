"""
Remote schema for the Supabase provider.

Every statement is safe to repeat: tables and indexes use IF NOT EXISTS,
the trigger function is CREATE OR REPLACE and triggers are dropped before
being recreated.
"""

#region Constants
SCHEMA_TABLES = ("collections", "requests", "environments")

SCHEMA_SQL = """-- Run this SQL in your Supabase SQL Editor (https://app.supabase.com)
-- Go to: SQL Editor -> New Query -> Paste this SQL -> Run

-- Enable UUID extension
CREATE EXTENSION IF NOT EXISTS "uuid-ossp";

-- Collections Table
CREATE TABLE IF NOT EXISTS collections (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    name TEXT NOT NULL,
    description TEXT,
    parent_id UUID REFERENCES collections(id) ON DELETE CASCADE,
    auth JSONB,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    synced BOOLEAN DEFAULT false,
    version BIGINT DEFAULT 0,
    cloud_id TEXT
);

-- Requests Table
CREATE TABLE IF NOT EXISTS requests (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    name TEXT NOT NULL,
    method TEXT NOT NULL,
    url TEXT NOT NULL,
    headers JSONB DEFAULT '{}'::jsonb,
    body JSONB,
    collection_id UUID REFERENCES collections(id) ON DELETE CASCADE,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    synced BOOLEAN DEFAULT false,
    version BIGINT DEFAULT 0,
    cloud_id TEXT
);

-- Environments Table
CREATE TABLE IF NOT EXISTS environments (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    name TEXT NOT NULL,
    variables JSONB DEFAULT '{}'::jsonb,
    is_active BOOLEAN DEFAULT false,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    synced BOOLEAN DEFAULT false,
    version BIGINT DEFAULT 0,
    cloud_id TEXT
);

-- Create indexes
CREATE INDEX IF NOT EXISTS idx_collections_parent_id ON collections(parent_id);
CREATE INDEX IF NOT EXISTS idx_collections_cloud_id ON collections(cloud_id);
CREATE INDEX IF NOT EXISTS idx_requests_collection_id ON requests(collection_id);
CREATE INDEX IF NOT EXISTS idx_requests_cloud_id ON requests(cloud_id);
CREATE INDEX IF NOT EXISTS idx_environments_is_active ON environments(is_active);
CREATE INDEX IF NOT EXISTS idx_environments_cloud_id ON environments(cloud_id);

-- Disable RLS (for API key access)
ALTER TABLE collections DISABLE ROW LEVEL SECURITY;
ALTER TABLE requests DISABLE ROW LEVEL SECURITY;
ALTER TABLE environments DISABLE ROW LEVEL SECURITY;

-- Create updated_at trigger function
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;

-- Add triggers
DROP TRIGGER IF EXISTS update_collections_updated_at ON collections;
CREATE TRIGGER update_collections_updated_at
    BEFORE UPDATE ON collections
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at_column();

DROP TRIGGER IF EXISTS update_requests_updated_at ON requests;
CREATE TRIGGER update_requests_updated_at
    BEFORE UPDATE ON requests
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at_column();

DROP TRIGGER IF EXISTS update_environments_updated_at ON environments;
CREATE TRIGGER update_environments_updated_at
    BEFORE UPDATE ON environments
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at_column();
"""

MANUAL_SCHEMA_STEPS = [
    "Go to https://app.supabase.com",
    "Select your project",
    "Click 'SQL Editor' in the left menu",
    "Click 'New Query'",
    "Copy and paste the SQL below",
    "Click 'Run'",
]

# Fragments PostgREST / Postgres use when a table is missing
MISSING_RELATION_SIGNATURES = ("PGRST", "relation", "does not exist")
#endregion


#region Functions


def manual_schema_instructions() -> str:
    """
    Step-by-step text for creating the schema by hand.

    Returns:
        Instructions followed by the full DDL
    """
    steps = "\n".join(f"{i}. {step}" for i, step in enumerate(MANUAL_SCHEMA_STEPS, start=1))
    return (
        "Database tables not found!\n\n"
        "Please create them manually in Supabase:\n"
        f"{steps}\n\n"
        f"SQL to run:\n{SCHEMA_SQL}\n"
        "After running the SQL, run 'geni sync schema' again to confirm."
    )


def looks_like_missing_relation(text: str) -> bool:
    """Check an error body for a "relation does not exist" signature."""
    return any(signature in text for signature in MISSING_RELATION_SIGNATURES)


#endregion
