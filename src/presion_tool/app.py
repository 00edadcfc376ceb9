"""App Kivy: recordatorio, lista/gráfico por pestañas y formulario modal."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path

from presion_tool.chart import DIASTOLIC_COLOR, SYSTOLIC_COLOR, y_bounds
from presion_tool.export import ExcelLayout, to_csv, write_doctor_xlsx
from presion_tool.form import FormController, FormValues, SaveError, ValidationError
from presion_tool.model import PERIOD_LABELS, PERIODS, local_now, period_label
from presion_tool.storage import (
    AppConfig,
    RecordStore,
    SQLiteKeyValueStore,
    load_config,
    save_config,
)
from presion_tool.views import (
    ChartSeries,
    ListItem,
    chart_window,
    filter_records,
    list_items,
    reminder_state,
)

logger = logging.getLogger(__name__)

TOAST_SECONDS = 2

STATUS_COLORS: dict[str, tuple[float, float, float, float]] = {
    "alert": (0.90, 0.30, 0.30, 1),
    "high": (0.95, 0.60, 0.30, 1),
    "elevated": (0.95, 0.85, 0.40, 1),
    "normal": (0.45, 0.75, 0.50, 1),
}

RANGE_OPTIONS: dict[str, int | None] = {
    "7 días": 7,
    "30 días": 30,
    "90 días": 90,
    "Todo": None,
}


def range_label(days: int | None) -> str:
    """Etiqueta del selector de rango para un valor de días."""
    for label, value in RANGE_OPTIONS.items():
        if value == days:
            return label
    return f"{days} días"


def list_item_markup(item: ListItem) -> str:
    """Texto con markup Kivy para una fila; el texto libre va escapado."""
    from kivy.utils import escape_markup

    text = (
        f"{escape_markup(item.heading)}   {item.period_label}\n"
        f"[b]{item.systolic}[/b] / {item.diastolic} mmHg   "
        f"pulso {item.pulse}   {item.status.label}"
    )
    if item.note:
        text += f"\n{escape_markup(item.note)}"
    return text


def run_app() -> int:
    """Lanza la app Kivy."""
    from kivy.app import App
    from kivy.clock import Clock
    from kivy.core.clipboard import Clipboard
    from kivy.core.window import Window
    from kivy.graphics import Color, Line
    from kivy.uix.boxlayout import BoxLayout
    from kivy.uix.button import Button
    from kivy.uix.gridlayout import GridLayout
    from kivy.uix.label import Label
    from kivy.uix.popup import Popup
    from kivy.uix.scrollview import ScrollView
    from kivy.uix.spinner import Spinner
    from kivy.uix.tabbedpanel import TabbedPanel, TabbedPanelItem
    from kivy.uix.textinput import TextInput
    from kivy.uix.widget import Widget

    def hex_rgba(color: str) -> tuple[float, float, float, float]:
        color = color.lstrip("#")
        r, g, b = (int(color[i : i + 2], 16) / 255 for i in (0, 2, 4))
        return r, g, b, 1

    class TrendCanvas(Widget):
        """Dibuja sistólica y diastólica como dos polilíneas."""

        def __init__(self, **kwargs: object) -> None:
            super().__init__(**kwargs)
            self.series = ChartSeries(labels=[], systolic=[], diastolic=[])
            self.bind(pos=self.redraw, size=self.redraw)

        def set_series(self, series: ChartSeries) -> None:
            self.series = series
            self.redraw()

        def redraw(self, *_args: object) -> None:
            self.canvas.clear()
            count = len(self.series)
            if count == 0:
                return
            low, high = y_bounds(self.series)
            span = (high - low) or 1
            step = self.width / max(count - 1, 1)

            def points(values: list[int]) -> list[float]:
                out: list[float] = []
                for idx, value in enumerate(values):
                    out.append(self.x + idx * step if count > 1 else self.center_x)
                    out.append(self.y + (value - low) / span * self.height)
                return out

            with self.canvas:
                for values, color in (
                    (self.series.systolic, SYSTOLIC_COLOR),
                    (self.series.diastolic, DIASTOLIC_COLOR),
                ):
                    Color(*hex_rgba(color))
                    pts = points(values)
                    if count > 1:
                        Line(points=pts, width=2)
                    for i in range(0, len(pts), 2):
                        Line(circle=(pts[i], pts[i + 1], 4), width=2)

    class PresionApp(App):
        """Main Kivy app."""

        def __init__(self, **kwargs: object) -> None:
            super().__init__(**kwargs)
            db_path = os.environ.get(
                "PRESION_TOOL_DB", str(Path.cwd() / "presion_tool.sqlite3")
            )
            self.backend = SQLiteKeyValueStore(Path(db_path).expanduser())
            self.store = RecordStore(self.backend)
            self.store.load()
            self.store.subscribe(lambda _store: self._refresh())
            self.app_config = load_config(self.backend)
            self.controller = FormController(self.store)
            self.reminder: Label | None = None
            self.status: Label | None = None
            self.list_grid: GridLayout | None = None
            self.chart: TrendCanvas | None = None
            self.chart_labels: BoxLayout | None = None
            self._toast_event: object | None = None

        def build(self) -> BoxLayout:
            Window.bind(on_key_down=self._on_key_down)

            root = BoxLayout(orientation="vertical", spacing=8, padding=10)
            self.reminder = Label(
                text="", markup=True, size_hint_y=None, height=60, halign="center"
            )
            root.add_widget(self.reminder)

            actions = BoxLayout(
                orientation="horizontal",
                spacing=8,
                size_hint_y=None,
                height=40,
            )
            new_btn = Button(text="+ Nueva lectura")
            csv_btn = Button(text="Copiar CSV")
            xlsx_btn = Button(text="Exportar Excel")
            exit_btn = Button(text="Salir")
            new_btn.bind(on_press=lambda *_args: self._open_form(None))
            csv_btn.bind(on_press=self._on_copy_csv)
            xlsx_btn.bind(on_press=self._on_export_xlsx)
            exit_btn.bind(on_press=lambda *_args: self.stop())
            for btn in (new_btn, csv_btn, xlsx_btn, exit_btn):
                actions.add_widget(btn)
            root.add_widget(actions)

            self.status = Label(text="", size_hint_y=None, height=30)
            root.add_widget(self.status)

            panel = TabbedPanel(do_default_tab=False)
            panel.add_widget(self._build_list_tab())
            panel.add_widget(self._build_chart_tab())
            root.add_widget(panel)

            self._refresh()
            return root

        def _build_list_tab(self) -> TabbedPanelItem:
            tab = TabbedPanelItem(text="Lista")
            box = BoxLayout(orientation="vertical", spacing=6, padding=6)
            current = range_label(self.app_config.filter_days)
            values = list(RANGE_OPTIONS)
            if current not in values:
                values.append(current)
            spinner = Spinner(
                text=current, values=values, size_hint_y=None, height=36
            )
            spinner.bind(text=self._on_range_change)
            box.add_widget(spinner)

            self.list_grid = GridLayout(cols=1, spacing=4, size_hint_y=None)
            self.list_grid.bind(minimum_height=self.list_grid.setter("height"))
            scroll = ScrollView()
            scroll.add_widget(self.list_grid)
            box.add_widget(scroll)
            tab.add_widget(box)
            return tab

        def _build_chart_tab(self) -> TabbedPanelItem:
            tab = TabbedPanelItem(text="Gráfico")
            box = BoxLayout(orientation="vertical", spacing=6, padding=12)
            self.chart = TrendCanvas()
            box.add_widget(self.chart)
            self.chart_labels = BoxLayout(size_hint_y=None, height=24)
            box.add_widget(self.chart_labels)
            legend = BoxLayout(size_hint_y=None, height=24)
            legend.add_widget(Label(text="Sistólica", color=hex_rgba(SYSTOLIC_COLOR)))
            legend.add_widget(
                Label(text="Diastólica", color=hex_rgba(DIASTOLIC_COLOR))
            )
            box.add_widget(legend)
            tab.add_widget(box)
            return tab

        def _on_key_down(
            self,
            _window: object,
            keycode: int,
            _scancode: int,
            _text: str,
            _modifiers: list[str],
        ) -> bool:
            # Esc: salir de fullscreen o cerrar app.
            if keycode != 27:
                return False
            if Window.fullscreen:
                Window.fullscreen = False
            else:
                self.stop()
            return True

        def _on_range_change(self, _spinner: object, text: str) -> None:
            days = RANGE_OPTIONS.get(text, self.app_config.filter_days)
            self.app_config = AppConfig(
                filter_days=days, export_dir=self.app_config.export_dir
            )
            save_config(self.backend, self.app_config)
            self._refresh_list()

        def _refresh(self) -> None:
            self._refresh_reminder()
            self._refresh_list()
            self._refresh_chart()

        def _refresh_reminder(self) -> None:
            if self.reminder is None:
                return
            state = reminder_state(self.store.records, local_now().date())
            color = "81C784" if state.recorded_today else "FF8A80"
            self.reminder.text = (
                f"[b][color={color}]{state.title}[/color][/b]\n{state.text}"
            )

        def _refresh_list(self) -> None:
            if self.list_grid is None:
                return
            self.list_grid.clear_widgets()
            readings = filter_records(
                self.store.records, self.app_config.filter_days, local_now()
            )
            if not readings:
                self.list_grid.add_widget(
                    Label(
                        text="Todavía no hay lecturas.\nTocá «+ Nueva lectura».",
                        size_hint_y=None,
                        height=80,
                        halign="center",
                    )
                )
                return
            for item in list_items(readings):
                btn = Button(
                    text=list_item_markup(item),
                    markup=True,
                    size_hint_y=None,
                    height=90 if item.note else 64,
                    halign="left",
                    background_color=STATUS_COLORS[item.status.category],
                )
                btn.bind(
                    on_press=lambda _btn, reading_id=item.id: self._open_form(
                        reading_id
                    )
                )
                self.list_grid.add_widget(btn)

        def _refresh_chart(self) -> None:
            if self.chart is None or self.chart_labels is None:
                return
            series = chart_window(self.store.records)
            self.chart.set_series(series)
            self.chart_labels.clear_widgets()
            for label in series.labels:
                self.chart_labels.add_widget(Label(text=label))

        def _open_form(self, reading_id: str | None) -> None:
            values = None
            if reading_id is not None:
                values = self.controller.open_edit(reading_id)
                if values is None:
                    return
            else:
                values = self.controller.open_create()

            inputs: dict[str, TextInput] = {}
            grid = GridLayout(cols=2, spacing=6, size_hint_y=None)
            grid.bind(minimum_height=grid.setter("height"))

            def add_row(label: str, widget: Widget) -> None:
                grid.add_widget(Label(text=label, size_hint_y=None, height=36))
                widget.size_hint_y = None
                widget.height = 36
                grid.add_widget(widget)

            for key, label in (
                ("systolic", "Sistólica (mmHg)"),
                ("diastolic", "Diastólica (mmHg)"),
                ("pulse", "Pulso (lpm)"),
                ("date", "Fecha"),
                ("time", "Hora"),
            ):
                inp = TextInput(
                    text=getattr(values, key),
                    multiline=False,
                    input_filter="int"
                    if key in ("systolic", "diastolic", "pulse")
                    else None,
                )
                inputs[key] = inp
                add_row(label, inp)
            period = Spinner(
                text=period_label(values.period),
                values=[period_label(p) for p in PERIODS],
            )
            add_row("Momento", period)
            note = TextInput(text=values.note, multiline=False)
            inputs["note"] = note
            add_row("Nota", note)

            errors = Label(
                text="", size_hint_y=None, height=40, color=(1, 0.4, 0.4, 1)
            )
            footer = BoxLayout(orientation="horizontal", size_hint_y=None, height=42)
            cancel_btn = Button(text="Cancelar")
            save_btn = Button(text="Guardar")
            footer.add_widget(cancel_btn)
            if reading_id is not None:
                delete_btn = Button(text="Eliminar")
                footer.add_widget(delete_btn)
            footer.add_widget(save_btn)

            content = BoxLayout(orientation="vertical", spacing=6, padding=6)
            content.add_widget(grid)
            content.add_widget(errors)
            content.add_widget(footer)
            popup = Popup(
                title="Editar lectura" if reading_id else "Nueva lectura",
                content=content,
                size_hint=(0.92, 0.92),
            )

            def submit(*_: object) -> None:
                labels = {label: key for key, label in PERIOD_LABELS.items()}
                form = FormValues(
                    date=inputs["date"].text,
                    time=inputs["time"].text,
                    period=labels.get(period.text, "other"),
                    systolic=inputs["systolic"].text,
                    diastolic=inputs["diastolic"].text,
                    pulse=inputs["pulse"].text,
                    note=inputs["note"].text,
                )
                try:
                    self.controller.submit(form)
                except ValidationError as exc:
                    errors.text = "\n".join(
                        f"{field}: {msg}" for field, msg in exc.errors.items()
                    )
                    return
                except SaveError as exc:
                    errors.text = f"Error al guardar: {exc}"
                    return
                popup.dismiss()
                self._toast("Lectura guardada.")

            cancel_btn.bind(on_press=lambda *_args: popup.dismiss())
            save_btn.bind(on_press=submit)
            if reading_id is not None:
                delete_btn.bind(
                    on_press=lambda *_args: self._confirm_delete(reading_id, popup)
                )
            popup.open()

        def _confirm_delete(self, reading_id: str, form_popup: Popup) -> None:
            content = BoxLayout(orientation="vertical", spacing=8, padding=8)
            content.add_widget(
                Label(text="¿Seguro que querés eliminar esta lectura?")
            )
            buttons = BoxLayout(orientation="horizontal", size_hint_y=None, height=40)
            no_btn = Button(text="No")
            yes_btn = Button(text="Sí, eliminar")
            buttons.add_widget(no_btn)
            buttons.add_widget(yes_btn)
            content.add_widget(buttons)
            popup = Popup(title="Eliminar", content=content, size_hint=(0.7, 0.4))

            def accept(*_: object) -> None:
                popup.dismiss()
                try:
                    deleted = self.controller.delete(reading_id, lambda: True)
                except SaveError as exc:
                    self._toast(f"Error al guardar: {exc}")
                    return
                form_popup.dismiss()
                if deleted:
                    self._toast("Lectura eliminada.")

            no_btn.bind(on_press=lambda *_args: popup.dismiss())
            yes_btn.bind(on_press=accept)
            popup.open()

        def _on_copy_csv(self, _: object) -> None:
            Clipboard.copy(to_csv(self.store.records))
            self._toast("CSV copiado al portapapeles.")

        def _on_export_xlsx(self, _: object) -> None:
            config = self.app_config
            out_dir = (
                Path(config.export_dir).expanduser()
                if config.export_dir
                else Path.cwd() / "salidas"
            )
            timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
            out_path = out_dir / f"presion_{timestamp}.xlsx"
            try:
                write_doctor_xlsx(list(self.store.records), out_path, ExcelLayout())
            except OSError as exc:
                logger.exception("Excel export failed")
                self._toast(f"Error al exportar ({type(exc).__name__}): {exc}")
                return
            self._toast(f"Excel generado: {out_path}")

        def _toast(self, text: str) -> None:
            if self.status is None:
                return
            self.status.text = text
            if self._toast_event is not None:
                self._toast_event.cancel()
            self._toast_event = Clock.schedule_once(self._clear_toast, TOAST_SECONDS)

        def _clear_toast(self, _dt: float) -> None:
            if self.status is not None:
                self.status.text = ""
            self._toast_event = None

    PresionApp().run()
    return 0
