from modules.auth.interfaces import ITokenVerifier, IUserRepository, IUserService
from modules.auth.keys import KeyCache
from modules.auth.repository import InMemoryUserRepository, UserRepository
from modules.auth.service import UserService
from modules.auth.verifier import TokenVerifier


class TestAuthInterfaces:
    def test_verifier_implements_interface(self):
        """TokenVerifier should satisfy ITokenVerifier."""
        verifier = TokenVerifier(KeyCache("https://idp.example/jwks"), issuer="i", audience="a")
        assert isinstance(verifier, ITokenVerifier)

    def test_service_implements_interface(self, store):
        """UserService should satisfy IUserService."""
        service = UserService(InMemoryUserRepository(store))
        assert isinstance(service, IUserService)

    def test_repositories_implement_interface(self, store):
        """Both repository implementations should satisfy IUserRepository."""
        methods = ["get_by_subject", "get_by_id", "get_active_by_email", "create", "update_profile"]
        assert isinstance(InMemoryUserRepository(store), IUserRepository)
        for method in methods:
            assert callable(getattr(UserRepository, method))
