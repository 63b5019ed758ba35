"""Hörsaalverwaltung — Haupt-CLI.

Verwendung:
  python main.py setup                        Konfiguration anlegen
  python main.py config show                  Konfiguration anzeigen
  python main.py seed                         Hörsäle anlegen (nur wenn leer)
  python main.py status                       Übersicht aller Hörsäle
  python main.py reconcile                    Täglichen Reinigungs-Wechsel abgleichen
  python main.py lecture start <id> ...       Vorlesung starten
  python main.py lecture free <id>            Hörsaal freigeben
  python main.py lecture held <id>            Geplante Vorlesung findet statt
  python main.py lecture skip <id>            Geplante Vorlesung fällt aus
  python main.py clean start <id>             Reinigung beginnen
  python main.py clean complete <id> ...      Reinigung abschließen
  python main.py facilities <id> ...          Ausstattung anzeigen / ändern
  python main.py schedule add|update|delete   Stundenplan pflegen
  python main.py schedule list|today <id>     Stundenplan anzeigen
  python main.py attendance <id> <anzahl>     Anwesenheit protokollieren
  python main.py request <id> <text>          Anfrage stellen
  python main.py records                      Protokoll anzeigen
  python main.py announcements                Ankündigungen anzeigen
"""

import logging
import sys
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config_or_abort():
    """Lädt die Konfiguration oder bricht mit Fehlermeldung ab."""
    from config.manager import ConfigManager
    mgr = ConfigManager()
    if mgr.first_run_check():
        console.print(
            "[red]Keine Konfiguration gefunden.[/red]\n"
            "Führen Sie zunächst [bold]python main.py setup[/bold] aus."
        )
        sys.exit(1)
    return mgr, mgr.load()


def _open_service(attach_reconciler: bool = True):
    """Öffnet Bestand + Service. Beim Öffnen wird der Reinigungs-Wechsel abgeglichen."""
    from engine.service import HallService
    from store.memory import JsonRoomStore

    _, config = _load_config_or_abort()
    _setup_logging(config.log_level)
    store = JsonRoomStore(
        Path(config.state_file),
        audit_limit=config.display.audit_limit,
        announcement_limit=config.display.announcement_limit,
    )
    service = HallService(store, config)
    if attach_reconciler:
        service.attach_reconciler()
    return service


def _handle_errors(func):
    """Wandelt Engine-Fehler in eine rote Meldung und Exit-Code 1 um."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        from engine.errors import HallError
        try:
            return func(*args, **kwargs)
        except HallError as e:
            console.print(f"[red bold]Fehler:[/red bold] {e}")
            sys.exit(1)
    return wrapper


def _fmt_time(moment: Optional[datetime], tz, fmt: str = "%d.%m.%Y %H:%M") -> str:
    if moment is None:
        return "—"
    if moment.tzinfo is not None:
        moment = moment.astimezone(tz)
    return moment.strftime(fmt)


def _print_result(result, success: str) -> None:
    console.print(f"[green]✓[/green] {success}")
    for request in result.requests:
        recipient = f" → {request.email_recipient}" if request.email_recipient else ""
        console.print(f"  [cyan]Benachrichtigung:[/cyan] {request.type} "
                      f"({request.department}{recipient})")


# ─── SETUP ────────────────────────────────────────────────────────────────────

@click.command("setup")
@click.option("--timezone", "tz_name", default="Europe/Berlin",
              help="IANA-Zeitzone für den täglichen Reinigungs-Wechsel.")
@click.option("--halls", default=16, type=int, help="Anzahl Hörsäle beim Seed.")
@click.option("--state-file", default="output/halls.json",
              help="JSON-Datei für den gemeinsamen Zustand.")
@click.option("--user", default="operator", help="Bedienerkennung im Protokoll.")
@click.option("--force", is_flag=True, default=False,
              help="Bestehende Konfiguration ohne Rückfrage überschreiben.")
def cmd_setup(tz_name: str, halls: int, state_file: str, user: str, force: bool):
    """Ersteinrichtung: Konfiguration anlegen."""
    from config.defaults import default_app_config
    from config.manager import ConfigManager

    mgr = ConfigManager()
    if not mgr.first_run_check() and not force:
        console.print("[yellow]Eine Konfiguration existiert bereits.[/yellow]")
        if not click.confirm("Trotzdem neu einrichten?", default=False):
            return

    base = default_app_config()
    try:
        config = base.model_copy(update={
            "timezone": tz_name,
            "state_file": state_file,
            "user": user,
            "seed": base.seed.model_copy(update={"hall_count": halls}),
        })
        config = type(config).model_validate(config.model_dump())
    except ValueError as e:
        console.print(f"[red]Ungültige Angaben:[/red] {e}")
        sys.exit(1)

    mgr.save(config)
    console.print("[bold green]Einrichtung abgeschlossen![/bold green]")
    console.print("Führen Sie jetzt [bold]python main.py seed[/bold] aus.")


# ─── CONFIG ───────────────────────────────────────────────────────────────────

@click.group("config")
def cmd_config():
    """Konfiguration anzeigen."""


@cmd_config.command("show")
def config_show():
    """Zeigt die aktuelle Konfiguration an."""
    mgr, config = _load_config_or_abort()

    console.print(Panel(
        f"[bold]{config.campus_name}[/bold]  |  {config.timezone}  |  "
        f"Bestand: {config.state_file}",
        title="Konfiguration",
        border_style="cyan",
    ))

    table = Table(title="Erstbefüllung", box=box.ROUNDED)
    table.add_column("Parameter", style="bold")
    table.add_column("Wert")
    for k, v in config.seed.model_dump().items():
        table.add_row(k, str(v))
    console.print(table)

    d = config.display
    console.print(
        f"[bold]Anzeige:[/bold] Protokoll {d.audit_limit} | "
        f"Ankündigungen {d.announcement_limit} | Anfragen {d.request_limit}"
    )


# ─── SEED ─────────────────────────────────────────────────────────────────────

@click.command("seed")
@click.option("--seed", "rng_seed", default=42, help="Zufalls-Seed für die Klimageräte.")
def cmd_seed(rng_seed: int):
    """Legt die Standard-Hörsäle an (nur bei leerem Bestand)."""
    from data.seed import seed_if_empty

    service = _open_service(attach_reconciler=False)
    if seed_if_empty(service.store, service.config, service.now(), seed=rng_seed):
        console.print(f"[green]✓[/green] {len(service.store.rooms())} Hörsäle angelegt.")
    else:
        console.print("[yellow]Bestand enthält bereits Hörsäle – nichts angelegt.[/yellow]")


# ─── STATUS ───────────────────────────────────────────────────────────────────

_STATUS_LABELS = {
    "free": "[green]Frei[/green]",
    "occupied": "[red]Belegt[/red]",
    "cleaning": "[blue]Reinigung[/blue]",
}


@click.command("status")
def cmd_status():
    """Übersicht: Belegung, Sauberkeit und nächste geplante Vorlesung."""
    from engine.schedule_matcher import next_entry_today

    service = _open_service()
    rooms = service.sorted_rooms()
    if not rooms:
        console.print("[dim]Keine Hörsäle vorhanden. "
                      "Führen Sie [bold]python main.py seed[/bold] aus.[/dim]")
        return

    now = service.now()
    table = Table(title=f"Hörsäle – {_fmt_time(now, service.tz)}", box=box.ROUNDED)
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Sauber")
    table.add_column("Vorlesung")
    table.add_column("Heute geplant")
    for room in rooms:
        lecture = room.current_lecture
        lecture_label = (
            f"{lecture.name} ({lecture.lecturer}) bis "
            f"{_fmt_time(lecture.end_time, service.tz, '%H:%M')}"
            if lecture else "—"
        )
        entry = next_entry_today(room, now, service.tz)
        entry_label = f"{entry.lecture.start_time} {entry.lecture.name}" if entry else "—"
        clean = room.cleaning_status
        table.add_row(
            room.id,
            room.name,
            _STATUS_LABELS[room.status.value],
            "[green]Sauber[/green]" if clean.is_clean else "[yellow]Reinigen[/yellow]",
            lecture_label,
            entry_label,
        )
    console.print(table)


@click.command("reconcile")
def cmd_reconcile():
    """Gleicht den täglichen Reinigungs-Wechsel für alle Hörsäle ab."""
    service = _open_service(attach_reconciler=False)
    written = service.reconcile()
    console.print(f"[green]✓[/green] {written} Hörsäle auf 'reinigungsbedürftig' gesetzt.")


# ─── LECTURE ──────────────────────────────────────────────────────────────────

@click.group("lecture")
def cmd_lecture():
    """Vorlesungen starten, beenden und geplante Vorlesungen bestätigen."""


@cmd_lecture.command("start")
@click.argument("room_id")
@click.option("--name", required=True, help="Name der Vorlesung.")
@click.option("--lecturer", required=True, help="Dozent.")
@click.option("--codes", "subject_codes", required=True, help="Fachkürzel, z.B. CS101.")
@click.option("--duration", required=True, help="Dauer in Stunden, z.B. 1.5.")
@click.option("--start", "start_time", default=None,
              help="Beginn (ISO, z.B. 2025-03-03T10:00). Standard: jetzt.")
@click.option("--students", default=0, help="Teilnehmerzahl (optional).")
@_handle_errors
def lecture_start(room_id, name, lecturer, subject_codes, duration, start_time, students):
    """Startet eine manuell eingetragene Vorlesung."""
    from engine.lifecycle import LectureInput

    service = _open_service()
    data = LectureInput(
        name=name, lecturer=lecturer, subject_codes=subject_codes,
        duration_hours=duration, start_time=start_time or service.now(),
        students_count=students,
    )
    result = service.start_lecture(room_id, data)
    _print_result(result, f"{service.room(room_id).name}: '{name.strip()}' läuft.")


@cmd_lecture.command("free")
@click.argument("room_id")
@_handle_errors
def lecture_free(room_id):
    """Beendet die laufende Vorlesung."""
    service = _open_service()
    result = service.mark_free(room_id)
    _print_result(result, f"{service.room(room_id).name} ist frei.")


@cmd_lecture.command("held")
@click.argument("room_id")
@click.option("--schedule-id", default=None,
              help="Stundenplan-Eintrag (Standard: frühester heute).")
@_handle_errors
def lecture_held(room_id, schedule_id):
    """Bestätigt, dass die heute geplante Vorlesung stattfindet."""
    service = _open_service()
    result = service.mark_scheduled_held(room_id, schedule_id)
    _print_result(result, f"{service.room(room_id).name}: geplante Vorlesung läuft.")


@cmd_lecture.command("skip")
@click.argument("room_id")
@click.option("--schedule-id", default=None,
              help="Stundenplan-Eintrag (Standard: frühester heute).")
@_handle_errors
def lecture_skip(room_id, schedule_id):
    """Meldet die heute geplante Vorlesung als ausgefallen."""
    service = _open_service()
    result = service.mark_scheduled_skipped(room_id, schedule_id)
    _print_result(result, f"{service.room(room_id).name}: Ausfall gemeldet.")


# ─── CLEAN ────────────────────────────────────────────────────────────────────

@click.group("clean")
def cmd_clean():
    """Reinigung beginnen und abschließen."""


@cmd_clean.command("start")
@click.argument("room_id")
@_handle_errors
def clean_start(room_id):
    """Markiert einen freien Hörsaal als 'in Reinigung'."""
    service = _open_service()
    result = service.start_cleaning(room_id)
    _print_result(result, f"{service.room(room_id).name} wird gereinigt.")


@cmd_clean.command("complete")
@click.argument("room_id")
@click.option("--cleaner", required=True, help="Name der Reinigungskraft.")
@click.option("--employee-id", required=True, help="Personalnummer.")
@click.option("--notes", default="", help="Notizen (optional).")
@_handle_errors
def clean_complete(room_id, cleaner, employee_id, notes):
    """Schließt die Reinigung ab; der Hörsaal wird frei und sauber."""
    service = _open_service()
    result = service.complete_cleaning(room_id, cleaner, employee_id, notes)
    _print_result(result, f"{service.room(room_id).name} ist sauber.")


# ─── FACILITIES ───────────────────────────────────────────────────────────────

@click.command("facilities")
@click.argument("room_id")
@click.option("--chairs", type=int, default=None, help="Anzahl Stühle.")
@click.option("--smart-board/--no-smart-board", default=None)
@click.option("--white-board/--no-white-board", default=None)
@click.option("--pens/--no-pens", default=None)
@click.option("--ac-count", type=int, default=None, help="Soll-Anzahl Klimageräte.")
@click.option("--toggle-ac", multiple=True, help="Klimagerät-ID umschalten (mehrfach).")
@_handle_errors
def cmd_facilities(room_id, chairs, smart_board, white_board, pens, ac_count, toggle_ac):
    """Zeigt die Ausstattung an oder ändert sie in einem Schreibvorgang."""
    service = _open_service()
    editor = service.edit_facilities(room_id)
    if chairs is not None:
        editor.set_chairs(chairs)
    if smart_board is not None:
        editor.smart_board = smart_board
    if white_board is not None:
        editor.white_board = white_board
    if pens is not None:
        editor.pens_available = pens
    if ac_count is not None:
        editor.set_ac_count(ac_count)
    for ac_id in toggle_ac:
        editor.toggle_ac(ac_id)

    if editor.is_dirty:
        service.commit_facilities(editor)
        console.print(f"[green]✓[/green] Ausstattung von {editor.room.name} gespeichert.")

    f = service.room(room_id).facilities
    table = Table(title=f"Ausstattung – {editor.room.name}", box=box.ROUNDED)
    table.add_column("Merkmal", style="bold")
    table.add_column("Wert")
    table.add_row("Stühle", str(f.chairs_available))
    table.add_row("Smartboard", "ja" if f.smart_board else "nein")
    table.add_row("Whiteboard", "ja" if f.white_board else "nein")
    table.add_row("Stifte", "ja" if f.pens_available else "nein")
    for ac in f.ac_machines:
        state = "[green]ok[/green]" if ac.working else "[red]defekt[/red]"
        table.add_row(f"Klima {ac.id[:8]}", state)
    console.print(table)


# ─── SCHEDULE ─────────────────────────────────────────────────────────────────

def _schedule_options(func):
    options = [
        click.option("--day", "days", multiple=True, required=True,
                     help="Wochentag (mehrfach), z.B. Monday oder mon."),
        click.option("--name", required=True, help="Name der Vorlesung."),
        click.option("--lecturer", required=True, help="Dozent."),
        click.option("--codes", "subject_codes", required=True, help="Fachkürzel."),
        click.option("--duration", required=True, help="Dauer in Stunden."),
        click.option("--start", "start_time", default="08:00", help="Uhrzeit HH:MM."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _schedule_input(days, name, lecturer, subject_codes, duration, start_time):
    from engine.schedule_editor import ScheduleInput
    return ScheduleInput(days=list(days), name=name, lecturer=lecturer,
                         subject_codes=subject_codes, duration_hours=duration,
                         start_time=start_time)


def _print_schedule(title: str, entries) -> None:
    if not entries:
        console.print(f"[dim]{title}: keine Einträge.[/dim]")
        return
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("ID", style="dim")
    table.add_column("Tage")
    table.add_column("Beginn")
    table.add_column("Vorlesung", style="bold")
    table.add_column("Dozent")
    table.add_column("Dauer")
    for e in entries:
        table.add_row(e.schedule_id[:8], ", ".join(d[:3] for d in e.days),
                      e.lecture.start_time, e.lecture.name, e.lecture.lecturer,
                      f"{e.lecture.duration_hours:g}h")
    console.print(table)


@click.group("schedule")
def cmd_schedule():
    """Wöchentlichen Stundenplan pflegen und anzeigen."""


@cmd_schedule.command("add")
@click.argument("room_id")
@_schedule_options
@_handle_errors
def schedule_add(room_id, **fields):
    """Legt einen neuen Stundenplan-Eintrag an."""
    service = _open_service()
    result = service.add_schedule_entry(room_id, _schedule_input(**fields))
    entry_id = result.commands[0].entry.schedule_id
    _print_result(result, f"Eintrag angelegt: {entry_id}")


@cmd_schedule.command("update")
@click.argument("room_id")
@click.argument("schedule_id")
@_schedule_options
@_handle_errors
def schedule_update(room_id, schedule_id, **fields):
    """Ersetzt einen bestehenden Stundenplan-Eintrag."""
    service = _open_service()
    result = service.update_schedule_entry(room_id, schedule_id, _schedule_input(**fields))
    _print_result(result, f"Eintrag aktualisiert: {schedule_id}")


@cmd_schedule.command("delete")
@click.argument("room_id")
@click.argument("schedule_id")
@_handle_errors
def schedule_delete(room_id, schedule_id):
    """Löscht einen Stundenplan-Eintrag."""
    service = _open_service()
    result = service.delete_schedule_entry(room_id, schedule_id)
    _print_result(result, f"Eintrag gelöscht: {schedule_id}")


@cmd_schedule.command("list")
@click.argument("room_id")
@_handle_errors
def schedule_list(room_id):
    """Zeigt den kompletten Stundenplan eines Hörsaals."""
    service = _open_service()
    room = service.room(room_id)
    _print_schedule(f"Stundenplan – {room.name}", list(room.schedule))


@cmd_schedule.command("today")
@click.argument("room_id")
@_handle_errors
def schedule_today(room_id):
    """Zeigt die heute geltenden Einträge (früheste zuerst)."""
    service = _open_service()
    room = service.room(room_id)
    _print_schedule(f"Heute – {room.name}", service.todays_schedule(room_id))


# ─── ATTENDANCE / REQUEST ─────────────────────────────────────────────────────

@click.command("attendance")
@click.argument("room_id")
@click.argument("count")
@_handle_errors
def cmd_attendance(room_id, count):
    """Protokolliert die aktuelle Teilnehmerzahl."""
    service = _open_service()
    result = service.log_attendance(room_id, count)
    _print_result(result, f"Anwesenheit protokolliert: {result.commands[0].record.count}")


@click.command("request")
@click.argument("room_id")
@click.argument("message")
@click.option("--special", is_flag=True, default=False,
              help="Sonderanfrage an die zuständige Person (E-Mail-Empfänger).")
@_handle_errors
def cmd_request(room_id, message, special):
    """Stellt eine Anfrage zu einem Hörsaal."""
    service = _open_service()
    if special:
        result = service.send_special_request(room_id, message)
    else:
        result = service.send_request(room_id, message)
    _print_result(result, "Anfrage gesendet.")


# ─── RECORDS / ANNOUNCEMENTS ──────────────────────────────────────────────────

@click.command("records")
@click.option("--limit", default=None, type=int, help="Anzahl Einträge (Standard: 100).")
def cmd_records(limit):
    """Zeigt das Protokoll (neueste zuerst)."""
    service = _open_service()
    records = service.audit_log.recent(limit)
    if not records:
        console.print("[dim]Keine Protokoll-Einträge.[/dim]")
        return
    table = Table(title="Protokoll", box=box.ROUNDED)
    table.add_column("Zeit")
    table.add_column("Art", style="bold")
    table.add_column("Hörsaal")
    table.add_column("Nachricht")
    table.add_column("Von", style="dim")
    for r in records:
        table.add_row(_fmt_time(r.timestamp, service.tz), r.kind.value,
                      r.room_name, r.message, r.user)
    console.print(table)


@click.command("announcements")
def cmd_announcements():
    """Zeigt die neuesten Ankündigungen."""
    service = _open_service()
    items = service.store.recent_announcements()
    if not items:
        console.print("[dim]Keine Ankündigungen.[/dim]")
        return
    for a in items:
        console.print(Panel(a.text, title=f"{a.author} – {_fmt_time(a.timestamp, service.tz)}",
                            border_style="cyan"))


# ─── HAUPT-CLI ────────────────────────────────────────────────────────────────

@click.group()
def cli():
    """Hörsaalverwaltung: Belegung, Reinigung und Wochenplan.

    Starten Sie mit: python main.py setup
    """


def main():
    """Einstiegspunkt."""
    cli()


# Befehle registrieren
cli.add_command(cmd_setup)
cli.add_command(cmd_config)
cli.add_command(cmd_seed)
cli.add_command(cmd_status)
cli.add_command(cmd_reconcile)
cli.add_command(cmd_lecture)
cli.add_command(cmd_clean)
cli.add_command(cmd_facilities)
cli.add_command(cmd_schedule)
cli.add_command(cmd_attendance)
cli.add_command(cmd_request)
cli.add_command(cmd_records)
cli.add_command(cmd_announcements)


if __name__ == "__main__":
    main()
