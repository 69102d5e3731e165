import uuid

from social import services
from social.errors import InvalidArgument
from social.models import Comment, Post, StoredFile, User

from .base import ApiTestCase, image


class ConnectionTests(ApiTestCase):

    def setUp(self):
        self.alice = self.make_user("Alice")
        self.bob = self.make_user("Bob")
        self.url = f"/api/users/{self.bob.pk}/connect"

    def test_connect_is_symmetric(self):
        response = self.client.post(self.url, **self.auth(self.alice))

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["connected"])
        self.assertEqual(body["target"], {"_id": str(self.bob.pk), "name": "Bob", "connections": 1})
        self.assertEqual(self.alice.connection_ids(), {self.bob.pk})
        self.assertEqual(self.bob.connection_ids(), {self.alice.pk})

    def test_connect_is_idempotent(self):
        self.client.post(self.url, **self.auth(self.alice))
        self.client.post(self.url, **self.auth(self.alice))
        self.client.post(f"/api/users/{self.alice.pk}/connect", **self.auth(self.bob))

        self.assertEqual(self.alice.connections.count(), 1)
        self.assertEqual(self.bob.connections.count(), 1)

    def test_connect_heals_one_way_edge(self):
        self.alice.connections.add(self.bob)

        self.client.post(self.url, **self.auth(self.alice))

        self.assertEqual(self.bob.connection_ids(), {self.alice.pk})

    def test_disconnect_removes_both_sides(self):
        self.client.post(self.url, **self.auth(self.alice))

        response = self.delete(self.url, self.alice)

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["connected"])
        self.assertEqual(self.alice.connection_ids(), set())
        self.assertEqual(self.bob.connection_ids(), set())

    def test_disconnect_when_not_connected(self):
        response = self.delete(self.url, self.alice)
        self.assertEqual(response.status_code, 200)

    def test_self_connection_rejected(self):
        url = f"/api/users/{self.alice.pk}/connect"

        self.assertEqual(self.client.post(url, **self.auth(self.alice)).status_code, 400)
        self.assertEqual(self.delete(url, self.alice).status_code, 400)
        with self.assertRaises(InvalidArgument):
            services.connect(self.alice, self.alice.pk)
        with self.assertRaises(InvalidArgument):
            services.disconnect(self.alice, self.alice.pk)

    def test_unknown_target(self):
        response = self.client.post(f"/api/users/{uuid.uuid4()}/connect", **self.auth(self.alice))
        self.assertEqual(response.status_code, 404)

    def test_requires_token(self):
        self.assertEqual(self.client.post(self.url).status_code, 401)


class SuggestionTests(ApiTestCase):

    def test_mutual_counts_and_exclusions(self):
        alice = self.make_user("Alice")
        bob = self.make_user("Bob")
        carol = self.make_user("Carol")
        dave = self.make_user("Dave")
        services.connect(alice, bob.pk)
        services.connect(dave, bob.pk)

        response = self.client.get("/api/users", **self.auth(alice))

        self.assertEqual(response.status_code, 200)
        counts = {u["_id"]: u["mutualCount"] for u in response.json()}
        self.assertEqual(counts, {str(dave.pk): 1, str(carol.pk): 0})

    def test_ordering_is_deterministic(self):
        alice = self.make_user("Alice")
        others = [self.make_user(name) for name in ("Bob", "Carol", "Dave")]

        first = [u["_id"] for u in self.client.get("/api/users", **self.auth(alice)).json()]
        second = [u["_id"] for u in self.client.get("/api/users", **self.auth(alice)).json()]

        self.assertEqual(first, second)
        self.assertEqual(first, [str(u.pk) for u in others])

    def test_requires_token(self):
        self.assertEqual(self.client.get("/api/users").status_code, 401)


class ProfileTests(ApiTestCase):

    def setUp(self):
        self.alice = self.make_user("Alice")
        self.bob = self.make_user("Bob")

    def test_profile_with_posts(self):
        older = self.create_post(self.alice, "older")
        newer = self.create_post(self.alice, "newer")
        self.create_post(self.bob, "not mine")

        response = self.client.get(f"/api/users/{self.alice.pk}")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["user"]["name"], "Alice")
        self.assertNotIn("password", body["user"])
        self.assertEqual([p["_id"] for p in body["posts"]], [newer["_id"], older["_id"]])

    def test_unknown_profile(self):
        self.assertEqual(self.client.get(f"/api/users/{uuid.uuid4()}").status_code, 404)
        self.assertEqual(self.client.get("/api/users/nope").status_code, 400)

    def test_update_own_profile(self):
        response = self.put_multipart(
            f"/api/users/{self.alice.pk}",
            {"name": "Alicia", "bio": "Engineer", "avatar": image(content=b"face")},
            self.alice,
        )

        self.assertEqual(response.status_code, 200)
        user = response.json()["user"]
        self.assertEqual(user["name"], "Alicia")
        self.assertEqual(user["bio"], "Engineer")
        avatar_response, body = self.fetch_file(user["avatar"])
        self.assertEqual(body, b"face")
        self.assertEqual(avatar_response["Content-Type"], "image/png")

    def test_non_string_bio_rejected(self):
        response = self.put_json(f"/api/users/{self.alice.pk}", {"bio": {"role": "Engineer"}}, self.alice)

        self.assertEqual(response.status_code, 400)
        self.alice.refresh_from_db()
        self.assertEqual(self.alice.bio, "")

    def test_blank_name_keeps_current_name(self):
        response = self.put_multipart(f"/api/users/{self.alice.pk}", {"name": "", "bio": ""}, self.alice)

        self.assertEqual(response.json()["user"]["name"], "Alice")
        self.assertEqual(response.json()["user"]["bio"], "")

    def test_new_avatar_replaces_old_blob(self):
        url = f"/api/users/{self.alice.pk}"
        first = self.put_multipart(url, {"avatar": image(content=b"one")}, self.alice).json()["user"]
        second = self.put_multipart(url, {"avatar": image(content=b"two")}, self.alice).json()["user"]

        self.assertEqual(self.fetch_file(first["avatar"])[0].status_code, 404)
        self.assertEqual(self.fetch_file(second["avatar"])[1], b"two")
        self.assertEqual(StoredFile.objects.count(), 1)

    def test_cannot_update_someone_else(self):
        response = self.put_multipart(f"/api/users/{self.bob.pk}", {"name": "Pwned"}, self.alice)

        self.assertEqual(response.status_code, 403)
        self.bob.refresh_from_db()
        self.assertEqual(self.bob.name, "Bob")


class DeleteAccountTests(ApiTestCase):

    def setUp(self):
        self.alice = self.make_user("Alice")
        self.bob = self.make_user("Bob")
        self.carol = self.make_user("Carol")
        services.connect(self.alice, self.bob.pk)
        services.connect(self.alice, self.carol.pk)
        services.connect(self.bob, self.carol.pk)

    def test_cascade(self):
        self.put_multipart(f"/api/users/{self.alice.pk}", {"avatar": image()}, self.alice)
        own = self.create_post(self.alice, "mine", image())
        bobs = self.create_post(self.bob, "bob's")
        self.client.post(f"/api/posts/{bobs['_id']}/like", **self.auth(self.alice))
        self.post_json(f"/api/posts/{bobs['_id']}/comments", {"text": "bye"}, self.alice)

        response = self.delete(f"/api/users/{self.alice.pk}", self.alice)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Account deleted")
        self.assertFalse(User.objects.filter(pk=self.alice.pk).exists())
        self.assertFalse(Post.objects.filter(user_id=self.alice.pk).exists())
        self.assertFalse(Post.objects.filter(pk=own["_id"]).exists())
        self.assertEqual(self.bob.connection_ids(), {self.carol.pk})
        self.assertEqual(self.carol.connection_ids(), {self.bob.pk})
        self.assertEqual(StoredFile.objects.count(), 0)

        remaining = Post.objects.get(pk=bobs["_id"])
        self.assertEqual(remaining.like_ids(), [])
        comment = Comment.objects.get(post=remaining)
        self.assertIsNone(comment.user_id)
        self.assertEqual(comment.name, "Alice")

    def test_only_self(self):
        response = self.delete(f"/api/users/{self.bob.pk}", self.alice)

        self.assertEqual(response.status_code, 403)
        self.assertTrue(User.objects.filter(pk=self.bob.pk).exists())

    def test_token_of_deleted_account_is_rejected(self):
        headers = self.auth(self.alice)
        self.delete(f"/api/users/{self.alice.pk}", self.alice)

        self.assertEqual(self.client.get("/api/users", **headers).status_code, 401)
