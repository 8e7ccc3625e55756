"""
Tests para BackupRunner, la estrategia mysqldump y los transportes
"""
import os
import stat
import unittest
from datetime import datetime
from pathlib import Path
import tempfile
import shutil
import sys
import time
from unittest import mock

# Agregar raíz del proyecto al path
sys.path.insert(0, str(Path(__file__).parent.parent))

import aiosmtplib

from mysqlbackup.exceptions import ConfigurationError, FatalBackupError, MailTransportError
from mysqlbackup.models import BackupResult, MailerKind, SmtpConfig, TransportResult
from mysqlbackup.services.backup_runner import BackupRunner
from mysqlbackup.strategies.base_strategy import DumpStrategy
from mysqlbackup.strategies.mysql_strategy import MySQLDumpStrategy
from mysqlbackup.transports.direct_transport import DirectTransport
from mysqlbackup.transports.smtp_transport import SmtpTransport

FIXED_DATE = datetime(2024, 1, 1, 3, 15)
TRANSPORT_CREATE = "mysqlbackup.services.mail_service.TransportFactory.create"


class FakeStrategy(DumpStrategy):
    """Estrategia que escribe un archivo sin ejecutar procesos"""

    def __init__(self, create_files=True):
        super().__init__()
        self.create_files = create_files
        self.calls = []

    def backup(self, job, output_file, config):
        self.calls.append((job.schema, str(output_file)))
        if self.create_files:
            output_file.write_bytes(b"dump")
        return BackupResult(
            database_name=job.schema,
            success=True,
            output_file=str(output_file),
            exit_status=0
        )


def write_script(directory: Path, name: str, body: str) -> Path:
    """Crea un ejecutable de shell en directory"""
    script = directory / name
    script.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IEXEC)
    return script


class RunnerTestCase(unittest.TestCase):
    """Base con directorio temporal"""

    def setUp(self):
        """Setup para tests"""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.output_dir = str(self.temp_dir) + os.sep

    def tearDown(self):
        """Cleanup después de tests"""
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def make_runner(self, strategy=None, **kwargs):
        runner = BackupRunner(
            clock=lambda: FIXED_DATE,
            strategy=strategy or FakeStrategy(),
            **kwargs
        )
        return runner.set_output_directory(self.output_dir)


class TestRunnerConfiguration(RunnerTestCase):
    """Tests para la configuración encadenada"""

    def test_methods_return_runner(self):
        """Test encadenamiento de métodos"""
        runner = BackupRunner.init()
        self.assertIs(runner.add_database("orders", "u", "p"), runner)
        self.assertIs(runner.set_output_directory(self.output_dir), runner)
        self.assertIs(runner.set_date_format("%Y"), runner)
        self.assertIs(runner.set_file_extension(".bz2"), runner)
        self.assertIs(runner.set_dump_executable_path("/usr/bin/"), runner)
        self.assertIs(runner.set_compressor_path("/bin/"), runner)
        self.assertIs(runner.set_delete_after_backup(), runner)
        self.assertIs(runner.set_mailer("smtp"), runner)
        self.assertIs(runner.set_smtp_config("smtp.example.com", "u", "p", 587), runner)
        self.assertIs(runner.set_sender("a@example.com"), runner)
        self.assertIs(runner.set_recipients(["b@example.com"]), runner)
        self.assertIs(runner.set_subject("Nightly"), runner)

    def test_add_database_validation(self):
        """Test schema y usuario obligatorios, password opcional"""
        runner = BackupRunner()
        with self.assertRaises(ValueError):
            runner.add_database("", "u", "p")
        with self.assertRaises(ValueError):
            runner.add_database("orders", "", "p")
        runner.add_database("orders", "u", "")
        self.assertEqual(len(runner.jobs), 1)

    def test_empty_output_directory_is_fatal(self):
        """Test directorio vacío termina el proceso"""
        with self.assertRaises(FatalBackupError):
            BackupRunner().set_output_directory("")

    def test_abort_handler_is_notified(self):
        """Test handler de abort inyectado"""
        handler = mock.Mock()
        with self.assertRaises(FatalBackupError):
            BackupRunner(abort_handler=handler).set_output_directory("")
        handler.assert_called_once()
        self.assertIn("No path for backup files given", handler.call_args[0][0])

    def test_output_directory_trailing_separator(self):
        """Test se agrega el separador final"""
        runner = BackupRunner().set_output_directory(str(self.temp_dir))
        self.assertEqual(runner.config.output_dir, str(self.temp_dir) + os.sep)

        runner.set_output_directory("/srv/backups/")
        self.assertEqual(runner.config.output_dir, "/srv/backups/")

    def test_empty_values_keep_defaults(self):
        """Test valores vacíos se ignoran"""
        runner = BackupRunner()
        runner.set_subject("").set_sender("").set_date_format("").set_mailer("")
        self.assertEqual(runner.config.subject, "Backup")
        self.assertEqual(runner.config.sender, "backup@localhost")
        self.assertEqual(runner.config.date_format, "%Y-%m-%d")
        self.assertEqual(runner.config.mailer, MailerKind.NONE)

        runner.set_mailer("smtp").set_mailer("")
        self.assertEqual(runner.config.mailer, MailerKind.SMTP)

    def test_unknown_mailer_disables_mail(self):
        """Test mailer desconocido equivale a none"""
        runner = BackupRunner().set_mailer("smtp").set_mailer("carrier-pigeon")
        self.assertEqual(runner.config.mailer, MailerKind.NONE)

    def test_smtp_config(self):
        """Test configuración SMTP"""
        runner = BackupRunner().set_smtp_config("smtp.example.com", "user", "pw", "465", "ssl")
        self.assertEqual(runner.config.smtp.port, 465)
        self.assertEqual(runner.config.smtp.encryption, "ssl")


class TestRunnerExecution(RunnerTestCase):
    """Tests para BackupRunner.run()"""

    def test_results_follow_insertion_order(self):
        """Test un resultado por base en el orden agregado"""
        runner = self.make_runner()
        for schema in ["orders", "billing", "users"]:
            runner.add_database(schema, "u", "p")

        results = runner.run()

        self.assertEqual([r.database_name for r in results], ["orders", "billing", "users"])
        self.assertEqual(len(results), 3)

    def test_output_path_format(self):
        """Test ruta {dir}{schema}_{fecha}.sql{extension}"""
        runner = self.make_runner().add_database("orders", "u", "p")
        results = runner.run()
        self.assertEqual(results[0].output_file, f"{self.output_dir}orders_2024-01-01.sql.gz")

        runner.set_date_format("%d%m%Y").set_file_extension(".bz2")
        self.assertEqual(
            runner.build_output_path(runner.jobs[0]),
            f"{self.output_dir}orders_01012024.sql.bz2"
        )

    def test_clock_read_per_job(self):
        """Test la fecha se lee en cada base"""
        clock = mock.Mock(side_effect=[datetime(2024, 1, 1, 23, 59), datetime(2024, 1, 2, 0, 1)])
        runner = BackupRunner(clock=clock, strategy=FakeStrategy())
        runner.set_output_directory(self.output_dir)
        runner.add_database("orders", "u", "p").add_database("billing", "u", "p")

        results = runner.run()

        self.assertTrue(results[0].output_file.endswith("orders_2024-01-01.sql.gz"))
        self.assertTrue(results[1].output_file.endswith("billing_2024-01-02.sql.gz"))

    def test_failed_dump_does_not_stop_batch(self):
        """Test un fallo no detiene el lote y la ruta se registra"""
        strategy = FakeStrategy()
        calls = {"count": 0}
        original = strategy.backup

        def flaky(job, output_file, config):
            calls["count"] += 1
            if calls["count"] == 1:
                raise RuntimeError("mysqldump exploded")
            return original(job, output_file, config)

        strategy.backup = flaky
        runner = self.make_runner(strategy).add_database("orders", "u", "p").add_database("billing", "u", "p")

        results = runner.run()

        self.assertFalse(results[0].success)
        self.assertEqual(results[0].output_file, f"{self.output_dir}orders_2024-01-01.sql.gz")
        self.assertTrue(results[1].success)

    def test_no_mailer_never_calls_transport(self):
        """Test mailer none no usa transporte"""
        runner = self.make_runner().add_database("orders", "u", "p").set_recipients(["a@example.com"])
        with mock.patch(TRANSPORT_CREATE) as create:
            runner.run()
        create.assert_not_called()

    def test_unknown_mailer_never_calls_transport(self):
        """Test mailer desconocido no usa transporte"""
        runner = self.make_runner().add_database("orders", "u", "p")
        runner.set_mailer("fax").set_recipients(["a@example.com"])
        with mock.patch(TRANSPORT_CREATE) as create:
            runner.run()
        create.assert_not_called()

    def test_mailer_without_recipients_skips_send(self):
        """Test sin destinatarios no hay envío ni error"""
        runner = self.make_runner().add_database("orders", "u", "p").set_mailer("smtp")
        runner.set_smtp_config("smtp.example.com", "u", "p", 25)
        with mock.patch(TRANSPORT_CREATE) as create:
            results = runner.run()
        create.assert_not_called()
        self.assertEqual(len(results), 1)

    def test_send_attaches_all_files(self):
        """Test un único correo con todos los archivos"""
        runner = self.make_runner().add_database("orders", "u", "p").add_database("billing", "u", "p")
        runner.set_mailer("direct").set_recipients(["a@example.com", "b@example.com"])
        runner.set_subject("Nightly").set_sender("db@example.com")

        transport = mock.Mock()
        transport.send.return_value = TransportResult(
            transport="direct", recipients_accepted=["a@example.com", "b@example.com"]
        )
        with mock.patch(TRANSPORT_CREATE, return_value=transport):
            results = runner.run()

        transport.send.assert_called_once_with(
            subject="Nightly",
            sender="db@example.com",
            recipients=["a@example.com", "b@example.com"],
            body="",
            attachments=[r.output_file for r in results]
        )

    def test_missing_attachment_is_fatal(self):
        """Test archivo inexistente al enviar termina el proceso"""
        runner = self.make_runner(FakeStrategy(create_files=False)).add_database("orders", "u", "p")
        runner.set_mailer("smtp").set_smtp_config("smtp.example.com", "u", "p", 25)
        runner.set_recipients(["a@example.com"]).set_delete_after_backup()

        transport = mock.Mock()
        with mock.patch(TRANSPORT_CREATE, return_value=transport):
            with self.assertRaises(FatalBackupError) as ctx:
                runner.run()

        expected = f"{self.output_dir}orders_2024-01-01.sql.gz"
        self.assertIn(expected, str(ctx.exception))
        self.assertIn("Path of backup file not found", ctx.exception.message)
        transport.send.assert_not_called()

    def test_smtp_without_config_rejected_before_dumps(self):
        """Test mailer smtp sin servidor falla antes de volcar o eliminar"""
        strategy = FakeStrategy()
        runner = self.make_runner(strategy).add_database("orders", "u", "p")
        runner.set_mailer("smtp").set_recipients(["a@example.com"]).set_delete_after_backup()

        with self.assertRaises(ConfigurationError):
            runner.run()

        self.assertEqual(strategy.calls, [])
        self.assertEqual(list(self.temp_dir.iterdir()), [])

    def test_delete_after_backup_without_mail(self):
        """Test eliminación independiente del correo"""
        runner = self.make_runner().add_database("orders", "u", "p").add_database("billing", "u", "p")
        runner.set_delete_after_backup()

        results = runner.run()

        for result in results:
            self.assertFalse(Path(result.output_file).exists())

    def test_delete_after_backup_with_mail(self):
        """Test eliminación después del envío"""
        runner = self.make_runner().add_database("orders", "u", "p")
        runner.set_mailer("direct").set_recipients(["a@example.com"]).set_delete_after_backup()

        transport = mock.Mock()
        transport.send.return_value = TransportResult(transport="direct", recipients_accepted=["a@example.com"])
        with mock.patch(TRANSPORT_CREATE, return_value=transport):
            results = runner.run()

        transport.send.assert_called_once()
        self.assertFalse(Path(results[0].output_file).exists())

    def test_files_kept_without_delete_flag(self):
        """Test sin flag los archivos permanecen"""
        results = self.make_runner().add_database("orders", "u", "p").run()
        self.assertTrue(Path(results[0].output_file).exists())

    def test_transport_failure_is_raised_after_cleanup(self):
        """Test fallo del transporte se informa con los resultados"""
        runner = self.make_runner().add_database("orders", "u", "p")
        runner.set_mailer("direct").set_recipients(["a@example.com"]).set_delete_after_backup()

        transport = mock.Mock()
        transport.send.side_effect = MailTransportError("relay denied", transport="direct")
        with mock.patch(TRANSPORT_CREATE, return_value=transport):
            with self.assertRaises(MailTransportError) as ctx:
                runner.run()

        self.assertEqual(len(ctx.exception.results), 1)
        self.assertFalse(Path(ctx.exception.results[0].output_file).exists())


@unittest.skipUnless(os.name == "posix", "Requiere shell POSIX")
class TestMySQLDumpStrategy(RunnerTestCase):
    """Tests de la tubería mysqldump | compresor con ejecutables falsos"""

    def setUp(self):
        super().setUp()
        self.bin_dir = self.temp_dir / "bin"
        self.bin_dir.mkdir()
        self.out_dir = self.temp_dir / "b"
        self.out_dir.mkdir()
        # Imprime un argumento por línea
        write_script(self.bin_dir, "mysqldump", 'for arg in "$@"; do echo "$arg"; done')
        write_script(self.bin_dir, "gzip", "cat")

    def make_pipeline_runner(self):
        return (BackupRunner(clock=lambda: FIXED_DATE)
                .set_output_directory(str(self.out_dir) + "/")
                .set_dump_executable_path(str(self.bin_dir) + "/")
                .set_compressor_path(str(self.bin_dir) + "/"))

    def test_pipeline_end_to_end(self):
        """Test argumentos exactos y ruta del archivo"""
        runner = self.make_pipeline_runner().add_database("orders", "u", "p")

        results = runner.run()

        expected_path = f"{self.out_dir}/orders_2024-01-01.sql.gz"
        self.assertEqual(results[0].output_file, expected_path)
        self.assertTrue(results[0].success)
        self.assertEqual(results[0].exit_status, 0)
        lines = Path(expected_path).read_text().splitlines()
        self.assertEqual(lines, [
            "--user=u",
            "--password=p",
            "orders",
            "--quick",
            "--lock-tables",
            "--add-drop-table",
        ])

    def test_host_and_quotes_are_not_shell_interpreted(self):
        """Test host opcional y valores con comillas"""
        runner = self.make_pipeline_runner().add_database("orders", "u'x", "p\"; rm -rf /", "db.local")

        results = runner.run()

        lines = Path(results[0].output_file).read_text().splitlines()
        self.assertEqual(lines[:4], [
            "--user=u'x",
            "--password=p\"; rm -rf /",
            "--host=db.local",
            "orders",
        ])

    def test_dump_failure_recorded(self):
        """Test código de salida del volcado"""
        write_script(self.bin_dir, "mysqldump", 'echo "Access denied" >&2; exit 2')
        runner = self.make_pipeline_runner().add_database("orders", "u", "p")

        results = runner.run()

        self.assertFalse(results[0].success)
        self.assertEqual(results[0].exit_status, 2)
        self.assertEqual(results[0].dump_exit_code, 2)
        self.assertEqual(results[0].compress_exit_code, 0)
        self.assertIn("Access denied", results[0].error)
        self.assertTrue(Path(results[0].output_file).exists())

    def test_missing_executable_recorded(self):
        """Test ejecutable inexistente"""
        runner = self.make_pipeline_runner().add_database("orders", "u", "p")
        runner.set_dump_executable_path(str(self.temp_dir / "nowhere") + "/")

        results = runner.run()

        self.assertFalse(results[0].success)
        self.assertIsNone(results[0].exit_status)
        self.assertTrue(results[0].error)
        self.assertTrue(Path(results[0].output_file).exists())

    def test_timeout(self):
        """Test tiempo máximo del volcado"""
        write_script(self.bin_dir, "mysqldump", "exec sleep 5")
        runner = self.make_pipeline_runner().add_database("orders", "u", "p").set_timeout(0.5)

        results = runner.run()

        self.assertFalse(results[0].success)
        self.assertIn("Timeout", results[0].error)

    def test_timeout_shared_by_both_processes(self):
        """Test el tiempo máximo cubre la tubería completa, no cada proceso"""
        write_script(self.bin_dir, "gzip", "exec sleep 0.8")
        write_script(self.bin_dir, "mysqldump", "exec sleep 5")
        runner = self.make_pipeline_runner().add_database("orders", "u", "p").set_timeout(1.0)

        started = time.monotonic()
        results = runner.run()
        elapsed = time.monotonic() - started

        self.assertFalse(results[0].success)
        self.assertIn("Timeout", results[0].error)
        self.assertLess(elapsed, 1.6)

    def test_remaining_time(self):
        """Test segundos restantes hasta el deadline"""
        self.assertIsNone(MySQLDumpStrategy._remaining(None))
        self.assertEqual(MySQLDumpStrategy._remaining(time.monotonic() - 10), 0)
        self.assertGreater(MySQLDumpStrategy._remaining(time.monotonic() + 10), 9)

    def test_mask_command(self):
        """Test el password no aparece en logs"""
        masked = MySQLDumpStrategy.mask_command(["mysqldump", "--user=u", "--password=secret", "orders"])
        self.assertNotIn("secret", masked)
        self.assertIn("--password=***", masked)


@unittest.skipUnless(os.name == "posix", "Requiere shell POSIX")
class TestDirectTransport(RunnerTestCase):
    """Tests para DirectTransport con un sendmail falso"""

    def test_send_pipes_message_to_sendmail(self):
        """Test mensaje con adjunto entregado a sendmail"""
        captured = self.temp_dir / "message.eml"
        args_file = self.temp_dir / "args.txt"
        sendmail = write_script(
            self.temp_dir, "sendmail",
            f'echo "$@" > "{args_file}"; cat > "{captured}"'
        )
        attachment = self.temp_dir / "orders_2024-01-01.sql.gz"
        attachment.write_bytes(b"\x1f\x8bdata")

        result = DirectTransport(str(sendmail)).send(
            subject="Backup",
            sender="backup@localhost",
            recipients=["a@example.com"],
            body="",
            attachments=[str(attachment)]
        )

        self.assertEqual(result.recipients_accepted, ["a@example.com"])
        message = captured.read_text()
        self.assertIn("Subject: Backup", message)
        self.assertIn("To: a@example.com", message)
        self.assertIn('filename="orders_2024-01-01.sql.gz"', message)
        self.assertIn("-t -i -f backup@localhost", args_file.read_text())

    def test_sendmail_failure(self):
        """Test sendmail con error"""
        sendmail = write_script(self.temp_dir, "sendmail", "cat > /dev/null; exit 75")
        with self.assertRaises(MailTransportError):
            DirectTransport(str(sendmail)).send("Backup", "backup@localhost", ["a@example.com"], "", [])


class TestSmtpTransport(unittest.TestCase):
    """Tests para SmtpTransport sin servidor real"""

    def setUp(self):
        self.transport = SmtpTransport(SmtpConfig(host="smtp.example.com", port=587, encryption="tls"))

    def test_rejected_recipients(self):
        """Test destinatarios rechazados"""
        errors = {"b@example.com": (550, "mailbox unavailable")}
        with mock.patch.object(SmtpTransport, "_send_async", new=mock.AsyncMock(return_value=errors)):
            result = self.transport.send("Backup", "backup@localhost", ["a@example.com", "b@example.com"], "", [])

        self.assertEqual(result.recipients_accepted, ["a@example.com"])
        self.assertEqual(result.recipients_rejected, ["b@example.com"])
        self.assertTrue(result.success)

    def test_smtp_error_raises(self):
        """Test error SMTP se convierte en MailTransportError"""
        failing = mock.AsyncMock(side_effect=aiosmtplib.SMTPException("auth failed"))
        with mock.patch.object(SmtpTransport, "_send_async", new=failing):
            with self.assertRaises(MailTransportError) as ctx:
                self.transport.send("Backup", "backup@localhost", ["a@example.com"], "", [])
        self.assertEqual(ctx.exception.transport, "smtp")

    def test_connection_error_raises(self):
        """Test error de conexión"""
        failing = mock.AsyncMock(side_effect=ConnectionRefusedError("refused"))
        with mock.patch.object(SmtpTransport, "_send_async", new=failing):
            with self.assertRaises(MailTransportError):
                self.transport.send("Backup", "backup@localhost", ["a@example.com"], "", [])

@mock.patch("mysqlbackup.transports.smtp_transport.aiosmtplib.SMTP")
class TestSmtpConnection(unittest.TestCase):
    """Tests para la conexión aiosmtplib según el cifrado configurado"""

    def make_client(self, smtp_class):
        client = mock.MagicMock()
        client.login = mock.AsyncMock()
        client.send_message = mock.AsyncMock(return_value=({}, "OK"))
        smtp_class.return_value = client
        return client

    def send(self, smtp_config):
        return SmtpTransport(smtp_config).send(
            "Backup", "backup@localhost", ["a@example.com"], "", []
        )

    def test_tls_uses_starttls(self, smtp_class):
        """Test encryption tls usa STARTTLS con contexto SSL"""
        self.make_client(smtp_class)
        self.send(SmtpConfig(host="smtp.example.com", port=587, encryption="tls", timeout=10.0))

        kwargs = smtp_class.call_args.kwargs
        self.assertEqual(kwargs["hostname"], "smtp.example.com")
        self.assertEqual(kwargs["port"], 587)
        self.assertFalse(kwargs["use_tls"])
        self.assertTrue(kwargs["start_tls"])
        self.assertIsNotNone(kwargs["tls_context"])
        self.assertEqual(kwargs["timeout"], 10.0)

    def test_ssl_uses_implicit_tls(self, smtp_class):
        """Test encryption ssl usa TLS implícito"""
        self.make_client(smtp_class)
        self.send(SmtpConfig(host="smtp.example.com", port=465, encryption="ssl"))

        kwargs = smtp_class.call_args.kwargs
        self.assertTrue(kwargs["use_tls"])
        self.assertFalse(kwargs["start_tls"])
        self.assertIsNotNone(kwargs["tls_context"])

    def test_none_is_plain_text(self, smtp_class):
        """Test encryption none sin TLS"""
        self.make_client(smtp_class)
        self.send(SmtpConfig(host="smtp.example.com"))

        kwargs = smtp_class.call_args.kwargs
        self.assertEqual(kwargs["port"], 25)
        self.assertFalse(kwargs["use_tls"])
        self.assertFalse(kwargs["start_tls"])
        self.assertIsNone(kwargs["tls_context"])

    def test_login_with_username(self, smtp_class):
        """Test login cuando hay usuario"""
        client = self.make_client(smtp_class)
        self.send(SmtpConfig(host="smtp.example.com", username="user", password="pw"))

        client.login.assert_awaited_once_with("user", "pw")

    def test_no_login_without_username(self, smtp_class):
        """Test sin usuario no hay login"""
        client = self.make_client(smtp_class)
        self.send(SmtpConfig(host="smtp.example.com"))

        client.login.assert_not_awaited()

    def test_send_message_envelope(self, smtp_class):
        """Test remitente y destinatarios del sobre"""
        client = self.make_client(smtp_class)
        result = self.send(SmtpConfig(host="smtp.example.com"))

        client.send_message.assert_awaited_once()
        message = client.send_message.call_args.args[0]
        self.assertEqual(message["Subject"], "Backup")
        self.assertEqual(client.send_message.call_args.kwargs["sender"], "backup@localhost")
        self.assertEqual(client.send_message.call_args.kwargs["recipients"], ["a@example.com"])
        self.assertEqual(result.recipients_accepted, ["a@example.com"])


if __name__ == '__main__':
    unittest.main(verbosity=2)
