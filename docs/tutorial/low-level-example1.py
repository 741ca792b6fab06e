from ttc import HeritableTag, TagTreeCache, tags_from_map

cache = TagTreeCache(
    namespace="foo",
    host="localhost",
    port=6379,
)


def get_user(user_id: int):
    def compute():
        print(f"computing user {user_id}")
        return {"id": user_id}

    # tags are only strings of your choice
    return cache.remember(
        f"user-{user_id}", compute, tags=tags_from_map({"user": user_id}), ttl=60
    ).value


def get_dashboard():
    return [get_user(1), get_user(2)]


# It will output "computing user 1" and "computing user 2" (cache miss)
res = cache.remember("dashboard", get_dashboard, tags=["dashboard"])
print(res.is_hit, res.value)

# It will output only "True [...]" (cache hit)
res = cache.remember("dashboard", get_dashboard, tags=["dashboard"])
print(res.is_hit, res.value)

# Let's clear a tag (O(1) operation, nothing is scanned)
cache.clear_tags("user:1")

# As "dashboard" was computed with "user-1" (tagged with "user:1")...
# ...the "dashboard" entry is invalidated too

# It will output "computing user 1" only
res = cache.remember("dashboard", get_dashboard, tags=["dashboard"])
print(res.is_hit, res.value)

# Heritable tags are applied to every value cached below (even to "user-3")
cache.wrap([HeritableTag("tenant:acme")], lambda: get_user(3))
cache.clear_tags("tenant:acme")

# It will output "computing user 3"
get_user(3)
