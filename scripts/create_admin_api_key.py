"""Create an admin API key and print the raw token once."""
from app.db import get_sessionmaker, init_engine
from app.models.api_key import ApiKey, ApiScope
from app.utils.apikey import gen_key


def main() -> None:
    init_engine()
    db = get_sessionmaker()()
    raw_token, prefix, key_hash = gen_key()

    try:
        api_key = ApiKey(
            name=f"admin-{prefix}",
            prefix=prefix,
            key_hash=key_hash,
            scope=ApiScope.admin,
            is_active=True,
        )
        db.add(api_key)
        db.commit()
        db.refresh(api_key)

        print("Admin API key created; it will not be shown again.")
        print(f"    Authorization: Bearer {raw_token}")
        print(f"(DB id: {api_key.id}, scope: {api_key.scope.value})")
    finally:
        db.close()


if __name__ == "__main__":
    main()
