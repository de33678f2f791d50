# Supabase tables: youtube_subscriptions, subscription_logs, videos (webhook_events is shared with payments)

"""
youtube_subscriptions:
- id: uuid (primary key)
- channel_id: text (unique)
- channel_title: text (nullable)
- user_id: uuid (nullable) - who requested the subscription
- hub_topic: text
- hub_callback: text
- hub_secret: text - HMAC-SHA1 key for X-Hub-Signature
- status: text (pending | active | expired | failed)
- lease_seconds: integer
- expires_at: timestamp (nullable)
- verified_at: timestamp (nullable)
- last_notification_at: timestamp (nullable)
- notification_count: integer (default 0)
- created_at / updated_at: timestamp

subscription_logs:
- id: uuid (primary key)
- channel_id: text
- action: text (subscribe | unsubscribe | verify | renew)
- status: text
- created_at: timestamp

videos:
- video_id: text (primary key)
- channel_id: text
- title: text
- published_at: timestamp
- deleted_at: timestamp (nullable)
- updated_at: timestamp
"""
