from ttc import TagTreeCache

cache = TagTreeCache(
    namespace="foo",
    host="localhost",
    port=6379,
)


class Blog:
    @cache.decorator(tags=lambda self, post_id: [f"post:{post_id}"])
    def get_post(self, post_id: int):
        print(f"get_post({post_id}) called")
        return {"id": post_id, "title": f"post {post_id}"}

    @cache.decorator(ttl=60, tags=["posts"])
    def get_posts(self):
        print("get_posts() called")
        return [self.get_post(1), self.get_post(2)]


if __name__ == "__main__":
    blog = Blog()

    # It will output "get_posts() called", "get_post(1) called" and
    # "get_post(2) called" (cache miss)
    print(blog.get_posts())

    # It will output only the result (cache hit)
    print(blog.get_posts())

    # "get_posts" never declared the "post:2" tag but depends on it
    # (because "get_post(2)" was called while computing it)
    cache.clear_tags("post:2")

    # It will output "get_posts() called" and "get_post(2) called"
    # ("get_post(1)" is still cached)
    print(blog.get_posts())
