#!/usr/bin/env python3
"""Report kitty profiles still using legacy kitty hashes.

Legacy hashes are 32-bit and can collide. The profiles table enforces a
unique kitty_hash, so colliding users never share a stored hash; instead the
second user's registration is refused. This script re-derives every user's
legacy hash from their seed and lists the seeds that collide, alongside how
many stored hashes are still in a legacy format, so a move to the sha256
scheme can be planned. It only reads.
"""

import sys
from pathlib import Path

# Add parent directory to path to import from kitty_social
sys.path.insert(0, str(Path(__file__).parent.parent))

from kitty_social.core.config import get_settings
from kitty_social.core.supabase import get_supabase_client
from kitty_social.services.identity_service import IdentityService, is_legacy_token
from kitty_social.services.profile_service import ProfileService

PAGE_SIZE = 1000


def main() -> None:
    """Main execution function."""
    settings = get_settings()

    try:
        client = get_supabase_client()
    except Exception as e:
        print(f"Error: Failed to initialize Supabase client: {e}")
        sys.exit(1)

    identity = IdentityService(ProfileService(client), settings=settings)

    scanned = 0
    stored_legacy = 0
    user_ids: list[str] = []
    start = 0
    while True:
        result = (
            client.table(settings.profiles_table)
            .select("user_id, kitty_hash")
            .range(start, start + PAGE_SIZE - 1)
            .execute()
        )
        rows = result.data or []
        for row in rows:
            scanned += 1
            if is_legacy_token(row["kitty_hash"]):
                stored_legacy += 1
            user_ids.append(row["user_id"])
        if len(rows) < PAGE_SIZE:
            break
        start += PAGE_SIZE

    collisions = identity.legacy_collisions(user_ids)

    print(f"Profiles scanned:        {scanned}")
    print(f"Legacy kitty hashes:     {stored_legacy}")
    print(f"Colliding legacy seeds:  {len(collisions)}")

    for token, users in sorted(collisions.items()):
        print(f"  {token}: {', '.join(users)}")

    if collisions:
        sys.exit(2)


if __name__ == "__main__":
    main()
