# Overview: Pytest coverage for the Flask CLI command groups.

from cargodesk.models import Branch, Operator, User


class TestSystemInit:
    def test_init_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=['system', 'init', '--code', 'DMO', '--mobile', '9000000000'])
        assert first.exit_code == 0, first.output
        assert 'Created operator' in first.output

        second = runner.invoke(args=['system', 'init', '--code', 'DMO', '--mobile', '9000000000'])
        assert second.exit_code == 0, second.output
        assert 'Using existing operator' in second.output

        assert db_session.query(Operator).count() == 1
        assert db_session.query(Branch).count() == 1
        admin = db_session.query(User).filter_by(mobile='9000000000').one()
        assert admin.is_superuser


class TestOperatorCommands:
    def test_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()

        created = runner.invoke(args=[
            'operators', 'create', '--name', 'Acme Cargo', '--code', 'ACM', '--phone', '9000000009',
        ])
        assert created.exit_code == 0, created.output

        listed = runner.invoke(args=['operators', 'list'])
        assert 'Acme Cargo' in listed.output

    def test_invalid_code_fails_cleanly(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            'operators', 'create', '--name', 'Bad', '--code', 'abc', '--phone', '1',
        ])
        assert result.exit_code != 0
        assert 'Operator code' in result.output
        assert db_session.query(Operator).count() == 0
