import unittest

from tringqr.dispatch.classifier import FreeText, Payment, WebLink
from tringqr.dispatch.redirect import RedirectResolver, build_search_url, build_wallet_uri
from tringqr.errors import InvalidURIFormat
from tringqr.platform import InstallChoice


class _FakeOpener:
    def __init__(self, openable, succeed=True):
        self._openable = openable
        self._succeed = succeed
        self.opened = []

    def can_open(self, scheme):
        return scheme in self._openable

    def open(self, url):
        self.opened.append(url)
        return self._succeed


class _FakePresenter:
    def __init__(self, choice=InstallChoice.CANCEL):
        self._choice = choice
        self.notices = []
        self.install_prompts = []

    def show_notice(self, message):
        self.notices.append(message)

    def show_remediation(self, message):
        self.notices.append(message)

    def prompt_install(self, app_name):
        self.install_prompts.append(app_name)
        return self._choice


class _FakeScheduler:
    def __init__(self):
        self.pending = []

    def call_later(self, delay, callback):
        self.pending.append((delay, callback))

    def fire(self):
        pending, self.pending = self.pending, []
        for _, callback in pending:
            callback()


class WalletUriTests(unittest.TestCase):
    def test_parameters_kept_in_order_with_source_marker(self):
        target = build_wallet_uri("upi://pay?pa=x@bank&pn=Test", "tez://upi/pay")
        self.assertEqual(target, "tez://upi/pay?pa=x@bank&pn=Test&source=upi_qr")

    def test_pairs_are_not_reencoded(self):
        target = build_wallet_uri("upi://pay?pn=A%20B&am=10.00&tn=Hi+there", "wallet://pay?v=1")
        self.assertEqual(target, "wallet://pay?v=1&pn=A%20B&am=10.00&tn=Hi+there&source=upi_qr")

    def test_missing_parameters_is_invalid(self):
        with self.assertRaises(InvalidURIFormat):
            build_wallet_uri("upi://pay")

    def test_search_url_percent_encodes(self):
        self.assertTrue(build_search_url("hello world").endswith("q=hello%20world"))
        self.assertTrue(build_search_url("a&b=c").endswith("q=a%26b%3Dc"))


class RedirectResolverTests(unittest.TestCase):
    def _resolver(self, opener, presenter):
        self.scheduler = _FakeScheduler()
        self.resumes = 0
        return RedirectResolver(
            opener,
            presenter,
            self.scheduler,
            wallet_pay_uri="tez://upi/pay",
            wallet_store_url="https://store.example/wallet",
            resume_delay=2.0,
        )

    def _resume(self):
        self.resumes += 1

    def test_payment_opens_wallet_and_resumes_after_delay(self):
        opener = _FakeOpener({"tez"})
        resolver = self._resolver(opener, _FakePresenter())
        outcome = resolver.resolve(Payment("upi://pay?pa=x@bank&pn=Test"), self._resume)

        self.assertTrue(outcome.opened)
        self.assertIn("pa=x@bank&pn=Test&source=upi_qr", outcome.target)
        self.assertEqual(opener.opened, [outcome.target])
        self.assertEqual(self.resumes, 0)
        self.assertEqual([delay for delay, _ in self.scheduler.pending], [2.0])
        self.scheduler.fire()
        self.assertEqual(self.resumes, 1)

    def test_missing_wallet_cancel_resumes_immediately(self):
        presenter = _FakePresenter(InstallChoice.CANCEL)
        resolver = self._resolver(_FakeOpener(set()), presenter)
        outcome = resolver.resolve(Payment("upi://pay?pa=x@bank"), self._resume)

        self.assertFalse(outcome.opened)
        self.assertTrue(outcome.resume_immediately)
        self.assertEqual(presenter.install_prompts, ["Google Pay"])
        self.assertEqual(self.resumes, 1)
        self.assertEqual(self.scheduler.pending, [])

    def test_missing_wallet_install_opens_store_then_resumes(self):
        opener = _FakeOpener({"https"})
        resolver = self._resolver(opener, _FakePresenter(InstallChoice.INSTALL))
        outcome = resolver.resolve(Payment("upi://pay?pa=x@bank"), self._resume)

        self.assertEqual(outcome.action, "install")
        self.assertEqual(opener.opened, ["https://store.example/wallet"])
        self.assertEqual(self.resumes, 0)
        self.scheduler.fire()
        self.assertEqual(self.resumes, 1)

    def test_weblink_resumes_even_when_open_fails(self):
        opener = _FakeOpener({"https"}, succeed=False)
        resolver = self._resolver(opener, _FakePresenter())
        outcome = resolver.resolve(WebLink("https://example.com"), self._resume)

        self.assertFalse(outcome.opened)
        self.scheduler.fire()
        self.assertEqual(self.resumes, 1)

    def test_free_text_opens_search(self):
        opener = _FakeOpener({"https"})
        resolver = self._resolver(opener, _FakePresenter())
        outcome = resolver.resolve(FreeText("hello world"), self._resume)

        self.assertEqual(outcome.action, "search")
        self.assertTrue(outcome.target.endswith("q=hello%20world"))
        self.scheduler.fire()
        self.assertEqual(self.resumes, 1)

    def test_invalid_payment_shows_notice_and_resumes(self):
        presenter = _FakePresenter()
        resolver = self._resolver(_FakeOpener({"tez"}), presenter)
        outcome = resolver.resolve(Payment("upi://pay"), self._resume)

        self.assertEqual(outcome.action, "invalid")
        self.assertEqual(len(presenter.notices), 1)
        self.scheduler.fire()
        self.assertEqual(self.resumes, 1)

    def test_resume_fires_once_even_if_scheduled_twice(self):
        opener = _FakeOpener({"https"})
        resolver = self._resolver(opener, _FakePresenter())
        resolver.resolve(WebLink("https://example.com"), self._resume)
        _, callback = self.scheduler.pending[0]
        callback()
        callback()
        self.assertEqual(self.resumes, 1)


if __name__ == "__main__":
    unittest.main()
