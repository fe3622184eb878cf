"""Tests for pdfturn.session module."""

import asyncio

from pdfturn.config import Config, ResizeConfig
from pdfturn.fallback import FallbackView
from pdfturn.geometry import Size
from pdfturn.plan import RotationPlan
from pdfturn.renderer import PixelSurface, TargetState
from pdfturn.services import MockBackend
from pdfturn.session import RotateSession


def make_session(engine, service=None, notices=None):
    config = Config(resize=ResizeConfig(settle_delay=0))
    notifier = notices.append if notices is not None else None
    return RotateSession(config, engine=engine, service=service or MockBackend(pages=4), notifier=notifier)


class TestOpen:
    def test_open_renders_default_plan(self, fake_engine):
        async def run():
            async with make_session(fake_engine) as session:
                handle = await session.open(b"%PDF")
                cells = session.grid.cells
                return handle, cells, cells[0].target.state, session.editor.plan

        handle, cells, state, plan = asyncio.run(run())
        assert handle.total_pages == 4
        assert plan == RotationPlan.default()
        assert [cell.page for cell in cells] == [1]
        assert state == TargetState.READY

    def test_estimate_replaced_by_document_count(self, fake_engine):
        notices = []

        async def run():
            async with make_session(fake_engine, MockBackend(pages=None), notices) as session:
                await session.open(b"x" * 500_000)
                return session.editor.total_pages, session.editor.authoritative, session.selector.total_pages

        total, authoritative, selector_total = asyncio.run(run())
        assert (total, authoritative, selector_total) == (4, True, 4)

    def test_unparseable_document_offers_fallback(self, fake_engine):
        fake_engine.fail_parse = True

        async def run():
            async with make_session(fake_engine) as session:
                handle = await session.open(b"%PDF-broken")
                target = session.renderer.target()
                return handle, target.state, target.fallback, session.grid.cells

        handle, state, fallback, cells = asyncio.run(run())
        assert handle is None
        assert state == TargetState.FALLBACK
        assert isinstance(fallback, FallbackView)
        assert cells == []


class TestEditing:
    def test_plan_edits_update_grid(self, fake_engine):
        async def run():
            async with make_session(fake_engine) as session:
                await session.open(b"%PDF")
                session.editor.add_entry()
                session.editor.update_entry(1, "degrees", 180)
                await session.refresh()
                return [(cell.page, cell.degrees) for cell in session.grid.cells], session.selector.plan

        cells, selector_plan = asyncio.run(run())
        assert cells == [(1, 90), (2, 180)]
        assert selector_plan.rotation_for(2) == 180

    def test_submit(self, fake_engine):
        service = MockBackend(pages=4)

        async def run():
            async with make_session(fake_engine, service) as session:
                await session.open(b"%PDF")
                session.editor.set_plan(RotationPlan.of([(6, 90)]))
                return await session.submit()

        result = asyncio.run(run())
        assert result.plan.to_wire_format() == [{"page": 4, "degrees": 90}]
        assert service.rotate_calls[0]["rotations"] == [{"page": 4, "degrees": 90}]


class TestViewing:
    def test_show_page(self, fake_engine):
        async def run():
            async with make_session(fake_engine) as session:
                await session.open(b"%PDF")
                return await session.show_page(4), session.selector.current_page

        surface, current = asyncio.run(run())
        assert isinstance(surface, PixelSurface)
        assert surface.page_number == 4
        assert current == 4

    def test_show_page_out_of_range(self, fake_engine):
        async def run():
            async with make_session(fake_engine) as session:
                await session.open(b"%PDF")
                return await session.show_page(9)

        assert asyncio.run(run()) is None

    def test_resize_rerenders_page_and_grid(self, fake_engine):
        async def run():
            async with make_session(fake_engine) as session:
                await session.open(b"%PDF")
                await session.resize_to(Size(500, 400))
                return session.renderer.target().surface, session.grid.layout

        surface, layout = asyncio.run(run())
        assert surface.container == Size(500, 400)
        assert layout.columns == 1
