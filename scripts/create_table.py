"""Create the bot_state table in Supabase."""

import requests

from ielts_bot.config import get_settings
from ielts_bot.db.backends import CREATE_TABLE_SQL

settings = get_settings()

if not settings.supabase_url or not settings.supabase_service_role_key:
    raise SystemExit("Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY first.")

# Supabase service role key gives us admin access
url = f"{settings.supabase_url}/rest/v1/rpc/exec_sql"
headers = {
    "apikey": settings.supabase_service_role_key,
    "Authorization": f"Bearer {settings.supabase_service_role_key}",
    "Content-Type": "application/json",
}

print("Trying to create table via RPC...")
resp = requests.post(url, headers=headers, json={"query": CREATE_TABLE_SQL}, timeout=30)
print(f"Status: {resp.status_code}")
print(f"Response: {resp.text[:500]}")

if resp.status_code != 200:
    print("\nRPC method didn't work. You need to create the table manually.")
    print("Go to https://supabase.com/dashboard, select your project,")
    print("go to SQL Editor, and run this SQL:\n")
    print(CREATE_TABLE_SQL)
    print("\nAlternatively, use STATE_BACKEND=file to keep state in a local JSON file.")
