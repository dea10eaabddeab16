import pytest

from ev_troubleshooting.rendering.images import ImageResolver


@pytest.fixture
def images_dir(tmp_path):
    directory = tmp_path / "images"
    (directory / "autel").mkdir(parents=True)
    (directory / "autel" / "e stop.png").write_bytes(b"png")
    (tmp_path / "secret.txt").write_text("nope")
    return directory


class TestImageResolver:
    def test_urls_pass_through(self, images_dir):
        url = "https://cdn.example.com/a.png"
        assert ImageResolver(images_dir).resolve(url) == url

    def test_local_file_served_from_public_url(self, images_dir):
        resolver = ImageResolver(images_dir, public_url="https://evbot.example.com/")
        assert resolver.resolve("autel/e stop.png") == "https://evbot.example.com/images/autel/e%20stop.png"

    def test_local_file_without_public_url(self, images_dir):
        resolved = ImageResolver(images_dir).resolve("/autel/e stop.png")
        assert resolved == str((images_dir / "autel" / "e stop.png").resolve())

    @pytest.mark.parametrize("ref", ["missing.png", "../secret.txt", "autel", None, ""])
    def test_unresolvable(self, images_dir, ref):
        assert ImageResolver(images_dir).resolve(ref) is None

    def test_no_images_dir(self):
        assert ImageResolver(None).resolve("a.png") is None
