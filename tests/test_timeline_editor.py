"""Tests for TimelineEditor (insert, split, delete, duplicate, tracks, assets)."""

from __future__ import annotations

import pytest

from magnetcut.models.asset import AssetKind
from magnetcut.models.audio import AudioKind
from magnetcut.models.timeline import TimelineState
from magnetcut.models.track import TrackKind
from magnetcut.services.asset_registry import AssetRegistry
from magnetcut.services.magnetic_links import validate_links
from magnetcut.services.playback_query import source_time_for
from magnetcut.services.serialization import serializable_state
from magnetcut.services.timeline_editor import TimelineEditor


# ── Helpers ──────────────────────────────────────────────────────────────────

def _make_editor() -> TimelineEditor:
    assets = AssetRegistry()
    assets.add(AssetKind.IMAGE, "img.png", "Image", asset_id="img")
    assets.add(AssetKind.VIDEO, "clip.mp4", "Clip", duration_ms=4000, asset_id="vid")
    assets.add(AssetKind.VIDEO, "late.mp4", "Late", asset_id="late")
    assets.add(AssetKind.AUDIO, "song.mp3", "Song", duration_ms=10000, asset_id="song")
    assets.add(AssetKind.AUDIO, "vo.wav", "VO", asset_id="vo")
    return TimelineEditor(TimelineState(), assets)


def _make_three_linked(editor: TimelineEditor):
    """Three appended images: [0,3000) [3000,6000) [6000,9000), all linked."""
    return [editor.add_scene_from_asset("img") for _ in range(3)]


def _no_overlap(state: TimelineState) -> bool:
    for track in state.tracks:
        clips = state.clips_on_track(track.id)
        for a, b in zip(clips, clips[1:]):
            if a.end_ms > b.start_ms:
                return False
    return True


class TestInsertion:
    def test_first_scene_at_zero(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("img")
        assert (s.start_ms, s.end_ms) == (0, 3000)
        assert s.track_id == "video-track-1"
        assert s.label == "Image"
        assert editor.state.selected_scene_id == s.id

    def test_append_links_to_last_clip(self):
        editor = _make_editor()
        a, b, c = _make_three_linked(editor)
        assert (b.start_ms, c.start_ms, c.end_ms) == (3000, 6000, 9000)
        assert a.link_right_id == b.id and b.link_left_id == a.id
        assert b.link_right_id == c.id and c.link_left_id == b.id
        assert validate_links(editor.state) == []
        assert editor.state.duration_ms == 11000

    def test_append_is_per_track(self):
        editor = _make_editor()
        _make_three_linked(editor)
        track = editor.add_track(TrackKind.VIDEO)
        s = editor.add_scene_from_asset("img", track_id=track.id)
        assert s.start_ms == 0
        assert s.link_left_id is None

    def test_explicit_position(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("img", at_ms=1234)
        assert s.start_ms == 1233  # nearest frame at 30fps
        neg = editor.add_scene_from_asset("img", at_ms=-500, track_id=editor.add_track("video").id)
        assert neg.start_ms == 0

    def test_explicit_position_never_overlaps(self):
        editor = _make_editor()
        editor.add_scene_from_asset("img")
        s = editor.add_scene_from_asset("img", at_ms=1000)
        assert s.start_ms == 3000
        assert _no_overlap(editor.state)

    def test_video_uses_known_duration(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("vid")
        assert s.duration_ms == 4000
        assert s.constraints_resolved
        assert s.max_duration_ms == 4000

    def test_video_requested_duration_capped(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("vid", duration_ms=9000)
        assert s.duration_ms == 4000

    def test_unknown_video_duration_defaults(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("late")
        assert s.duration_ms == 5000
        assert not s.constraints_resolved
        assert s.max_duration_ms is None

    def test_audio_defaults(self):
        editor = _make_editor()
        song = editor.add_audio_from_asset("song")
        vo = editor.add_audio_from_asset("vo", kind="vo")
        assert song.duration_ms == 10000
        assert vo.kind is AudioKind.VO
        assert vo.start_ms == 10000
        assert vo.duration_ms == 30000

    def test_auto_creates_tracks_in_order(self):
        editor = _make_editor()
        editor.state.tracks = []
        clip = editor.add_audio_from_asset("song")
        scene = editor.add_scene_from_asset("img")
        kinds = [t.kind for t in editor.state.tracks]
        assert kinds == [TrackKind.VIDEO, TrackKind.AUDIO]
        assert editor.state.track(clip.track_id).name == "Audio 1"
        assert editor.state.track(scene.track_id).name == "Media 1"

    def test_wrong_asset_kind_raises(self):
        editor = _make_editor()
        with pytest.raises(ValueError):
            editor.add_scene_from_asset("song")
        with pytest.raises(ValueError):
            editor.add_audio_from_asset("img")

    def test_wrong_track_kind_raises(self):
        editor = _make_editor()
        with pytest.raises(ValueError):
            editor.add_scene_from_asset("img", track_id="audio-track-1")
        # the failed insert left no history entry behind
        assert not editor.history.can_undo()

    def test_unknown_asset_is_noop(self):
        editor = _make_editor()
        assert editor.add_scene_from_asset("nope") is None
        assert editor.state.scenes == {}

    def test_each_insert_is_one_undo_step(self):
        editor = _make_editor()
        _make_three_linked(editor)
        assert len(editor.history.past) == 3
        editor.undo()
        assert len(editor.state.scenes) == 2


class TestSplit:
    def test_audio_split_scenario(self):
        editor = _make_editor()
        clip = editor.add_audio_from_asset("song")
        assert (clip.start_ms, clip.end_ms, clip.audio_offset_ms) == (0, 10000, 0)

        left_id, right_id = editor.split_at(4000)
        left = editor.state.audio_clips[left_id]
        right = editor.state.audio_clips[right_id]
        assert (left.start_ms, left.end_ms, left.audio_offset_ms) == (0, 4000, 0)
        assert (right.start_ms, right.end_ms, right.audio_offset_ms) == (4000, 10000, 4000)
        assert clip.id not in editor.state.audio_clips
        for t in (0, 1500, 5999):
            assert source_time_for(right, 4000 + t) == 4000 + t
        assert len(editor.history.past) == 2

    def test_scene_split_links_parts_and_keeps_outer_links(self):
        editor = _make_editor()
        a, b, c = _make_three_linked(editor)
        editor.select_scene(b.id)
        left_id, right_id = editor.split_at(4500)
        left = editor.state.scenes[left_id]
        right = editor.state.scenes[right_id]
        assert (left.start_ms, left.end_ms) == (3000, 4500)
        assert (right.start_ms, right.end_ms) == (4500, 6000)
        assert left.link_right_id == right_id and right.link_left_id == left_id
        assert a.link_right_id == left_id
        assert c.link_left_id == right_id
        assert validate_links(editor.state) == []
        assert left.asset_id == right.asset_id == "img"

    def test_split_quantizes_cut(self):
        editor = _make_editor()
        editor.add_scene_from_asset("img")
        left_id, _ = editor.split_at(1010)
        assert editor.state.scenes[left_id].end_ms == 1000

    def test_split_without_selection_finds_clip(self):
        editor = _make_editor()
        editor.add_scene_from_asset("img")
        editor.add_audio_from_asset("song")
        editor.select_scene(None)
        ids = editor.split_at(1000)
        assert ids is not None
        # scenes win over audio
        assert ids[0] in editor.state.scenes

    def test_split_outside_any_clip_is_noop(self):
        editor = _make_editor()
        editor.add_scene_from_asset("img")
        past = len(editor.history.past)
        assert editor.split_at(50000) is None
        assert editor.split_at(0) is None  # on an edge
        assert len(editor.history.past) == past

    def test_video_split_advances_in_point(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("vid")
        left_id, right_id = editor.split_at(1500)
        left = editor.state.scenes[left_id]
        right = editor.state.scenes[right_id]
        assert left.video_offset_ms == 0
        assert right.video_offset_ms == 1500
        assert source_time_for(right, 2500) == 2500
        assert right.max_duration_ms == 2500
        assert s.id not in editor.state.scenes

    def test_image_split_has_no_in_point(self):
        editor = _make_editor()
        editor.add_scene_from_asset("img")
        _, right_id = editor.split_at(1000)
        assert editor.state.scenes[right_id].video_offset_ms is None


class TestDelete:
    def test_plain_delete_leaves_gap(self):
        editor = _make_editor()
        a, b, c = _make_three_linked(editor)
        editor.select_scene(b.id)
        assert editor.delete_selection() is True
        assert b.id not in editor.state.scenes
        assert a.link_right_id is None
        assert c.link_left_id is None
        assert c.start_ms == 6000
        assert editor.state.selected_scene_id == c.id

    def test_ripple_delete_closes_gap_on_all_tracks(self):
        editor = _make_editor()
        a, b, c = _make_three_linked(editor)
        music = editor.add_audio_from_asset("vo", at_ms=6000, duration_ms=2000)
        editor.select_scene(b.id)
        editor.delete_selection(ripple=True)
        assert (c.start_ms, c.end_ms) == (3000, 6000)
        assert (music.start_ms, music.end_ms) == (3000, 5000)
        assert a.end_ms == c.start_ms
        assert validate_links(editor.state) == []
        assert editor.state.duration_ms == 8000

    def test_ripple_delete_then_undo_restores_everything(self):
        editor = _make_editor()
        a, b, c = _make_three_linked(editor)
        editor.add_audio_from_asset("vo", at_ms=6000, duration_ms=2000)
        before = serializable_state(editor.state)

        editor.select_scene(b.id)
        editor.delete_selection(ripple=True)
        after = serializable_state(editor.state)
        assert after != before

        assert editor.undo() is True
        assert serializable_state(editor.state) == before
        restored = editor.state.scenes
        assert restored[a.id].link_right_id == b.id
        assert restored[b.id].link_left_id == a.id
        assert restored[b.id].link_right_id == c.id
        assert restored[c.id].link_left_id == b.id

        assert editor.redo() is True
        assert serializable_state(editor.state) == after

    def test_ripple_never_overlaps_straddling_clip(self):
        editor = _make_editor()
        _, b, c = _make_three_linked(editor)
        long_clip = editor.add_audio_from_asset("vo", at_ms=0, duration_ms=5000)
        later = editor.add_audio_from_asset("vo", at_ms=6000, duration_ms=1000)
        editor.select_scene(b.id)
        editor.delete_selection(ripple=True)
        assert later.start_ms == long_clip.end_ms == 5000
        assert _no_overlap(editor.state)

    def test_delete_audio(self):
        editor = _make_editor()
        clip = editor.add_audio_from_asset("song")
        assert editor.delete_selection() is True
        assert clip.id not in editor.state.audio_clips
        assert editor.state.selected_audio_id is None

    def test_nothing_selected(self):
        editor = _make_editor()
        editor.add_scene_from_asset("img")
        editor.select_scene(None)
        past = len(editor.history.past)
        assert editor.delete_selection() is False
        assert len(editor.history.past) == past


class TestDuplicate:
    def test_duplicate_at_end_without_links(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("img")
        copy_id = editor.duplicate_selection()
        copy = editor.state.scenes[copy_id]
        assert (copy.start_ms, copy.end_ms) == (3000, 6000)
        assert copy.link_left_id is None and copy.link_right_id is None
        assert s.link_right_id is None
        assert editor.state.selected_scene_id == copy_id

    def test_duplicate_pushes_later_clips(self):
        editor = _make_editor()
        a, b, c = _make_three_linked(editor)
        editor.select_scene(a.id)
        copy_id = editor.duplicate_selection()
        copy = editor.state.scenes[copy_id]
        assert (copy.start_ms, copy.end_ms) == (3000, 6000)
        assert (b.start_ms, c.start_ms) == (6000, 9000)
        assert a.link_right_id is None
        assert b.link_right_id == c.id
        assert validate_links(editor.state) == []
        assert _no_overlap(editor.state)

    def test_duplicate_audio(self):
        editor = _make_editor()
        clip = editor.add_audio_from_asset("song")
        editor.set_audio_gain(clip.id, 0.5)
        copy_id = editor.duplicate_selection()
        copy = editor.state.audio_clips[copy_id]
        assert copy.start_ms == 10000
        assert copy.gain == 0.5
        assert copy.audio_offset_ms == clip.audio_offset_ms


class TestTracks:
    def test_add_track_names(self):
        editor = _make_editor()
        v2 = editor.add_track(TrackKind.VIDEO)
        a2 = editor.add_track("audio")
        assert (v2.id, v2.name) == ("video-track-2", "Media 2")
        assert (a2.id, a2.name) == ("audio-track-2", "Audio 2")
        assert [t.id for t in editor.state.tracks] == [
            "video-track-1", "video-track-2", "audio-track-1", "audio-track-2",
        ]

    def test_remove_track_removes_only_its_clips(self):
        editor = _make_editor()
        a2 = editor.add_track(TrackKind.AUDIO)
        keep = editor.add_audio_from_asset("song")
        doomed = editor.add_audio_from_asset("vo", track_id=a2.id)
        scene = editor.add_scene_from_asset("img")
        assert editor.remove_track(a2.id) is True
        assert keep.id in editor.state.audio_clips
        assert doomed.id not in editor.state.audio_clips
        assert scene.id in editor.state.scenes
        assert editor.state.track(a2.id) is None

    def test_remove_video_track_clears_links(self):
        editor = _make_editor()
        _make_three_linked(editor)
        editor.remove_track("video-track-1")
        assert editor.state.scenes == {}
        editor.undo()
        assert len(editor.state.scenes) == 3
        assert validate_links(editor.state) == []

    def test_mute_and_solo(self):
        editor = _make_editor()
        editor.add_track(TrackKind.AUDIO)
        editor.toggle_track_solo("audio-track-1")
        editor.toggle_track_solo("audio-track-2")
        t1 = editor.state.track("audio-track-1")
        t2 = editor.state.track("audio-track-2")
        assert not t1.soloed and t2.soloed

        editor.toggle_track_mute("audio-track-2")
        assert t2.muted and not t2.soloed
        editor.toggle_track_solo("audio-track-2")
        assert t2.soloed and not t2.muted

    def test_rename(self):
        editor = _make_editor()
        assert editor.rename_track("video-track-1", "B-roll") is True
        assert editor.state.track("video-track-1").name == "B-roll"
        assert editor.rename_track("missing", "x") is False

    def test_move_scene_to_track_clears_links(self):
        editor = _make_editor()
        a, b, _ = _make_three_linked(editor)
        v2 = editor.add_track(TrackKind.VIDEO)
        assert editor.move_scene_to_track(b.id, v2.id) is True
        assert b.track_id == v2.id
        assert b.link_left_id is None and b.link_right_id is None
        assert a.link_right_id is None
        assert validate_links(editor.state) == []

    def test_move_scene_to_audio_track_raises(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("img")
        with pytest.raises(ValueError):
            editor.move_scene_to_track(s.id, "audio-track-1")

    def test_move_audio_to_track_avoids_overlap(self):
        editor = _make_editor()
        a2 = editor.add_track(TrackKind.AUDIO)
        editor.add_audio_from_asset("song", track_id=a2.id)
        clip = editor.add_audio_from_asset("vo", at_ms=2000, duration_ms=1000)
        editor.move_audio_to_track(clip.id, a2.id)
        assert clip.track_id == a2.id
        assert clip.start_ms == 10000
        assert _no_overlap(editor.state)


class TestClipProperties:
    def test_gain_clamped(self):
        editor = _make_editor()
        clip = editor.add_audio_from_asset("song")
        editor.set_audio_gain(clip.id, 3.0)
        assert clip.gain == 1.0
        editor.set_audio_gain(clip.id, -1)
        assert clip.gain == 0.0

    def test_audio_mute_toggles_gain(self):
        editor = _make_editor()
        clip = editor.add_audio_from_asset("song")
        editor.toggle_audio_mute(clip.id)
        assert clip.gain == 0.0
        editor.toggle_audio_mute(clip.id)
        assert clip.gain == 1.0

    def test_fades_not_negative(self):
        editor = _make_editor()
        clip = editor.add_audio_from_asset("song")
        editor.set_audio_fade_in(clip.id, -100)
        editor.set_audio_fade_out(clip.id, 250)
        assert clip.fade_in_ms == 0
        assert clip.fade_out_ms == 250

    def test_scene_properties(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("img")
        editor.set_scene_gain(s.id, 0.3)
        editor.toggle_scene_mute(s.id)
        editor.update_scene_transform(s.id, x=10, scale=2.0)
        assert s.gain == 0.3
        assert s.muted
        assert (s.transform.x, s.transform.y, s.transform.scale) == (10, 0.0, 2.0)

    def test_property_edit_is_undoable(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("img")
        editor.toggle_scene_mute(s.id)
        editor.undo()
        assert editor.state.scenes[s.id].muted is False


class TestAssetBinding:
    def test_resolve_duration_shrinks_and_unlinks(self):
        editor = _make_editor()
        late = editor.add_scene_from_asset("late")
        after = editor.add_scene_from_asset("img")
        assert late.link_right_id == after.id

        shrunk = editor.resolve_asset_duration("late", 4000)
        assert shrunk == 1
        assert late.duration_ms == 4000
        assert late.constraints_resolved
        assert late.link_right_id is None
        assert after.start_ms == 5000  # never moved or deleted
        assert validate_links(editor.state) == []

    def test_resolve_duration_never_grows(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("late", duration_ms=2000)
        assert editor.resolve_asset_duration("late", 9000) == 0
        assert s.duration_ms == 2000
        assert s.max_duration_ms == 9000

    def test_resolve_audio_duration_respects_offset(self):
        editor = _make_editor()
        clip = editor.add_audio_from_asset("vo")
        _, right_id = editor.split_at(10000)
        right = editor.state.audio_clips[right_id]
        editor.resolve_asset_duration("vo", 15000)
        assert right.audio_offset_ms == 10000
        assert right.duration_ms == 5000
        assert clip.id not in editor.state.audio_clips

    def test_resolve_invalid_duration_ignored(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("late")
        assert editor.resolve_asset_duration("late", 0) == 0
        assert not s.constraints_resolved

    def test_resolved_duration_survives_undo(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("late")
        editor.move_scene(s.id, 1000)
        editor.resolve_asset_duration("late", 3000)
        assert (s.start_ms, s.end_ms) == (1000, 4000)

        editor.undo()
        restored = editor.state.scenes[s.id]
        assert restored.start_ms == 0
        assert restored.duration_ms == 3000
        assert restored.max_duration_ms == 3000

        editor.redo()
        restored = editor.state.scenes[s.id]
        assert (restored.start_ms, restored.end_ms) == (1000, 4000)

    def test_resolved_duration_survives_cancelled_drag(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("late")
        editor.history.begin_tx("Move scene")
        editor.move_scene(s.id, 2000)
        editor.resolve_asset_duration("late", 2500)
        editor.history.cancel_tx()
        restored = editor.state.scenes[s.id]
        assert (restored.start_ms, restored.end_ms) == (0, 2500)
        assert restored.constraints_resolved

    def test_resolved_duration_used_for_later_clips(self):
        editor = _make_editor()
        assert editor.resolve_asset_duration("late", 10000) == 0
        assert editor.assets.get("late").duration_ms == 10000

        s = editor.add_scene_from_asset("late")
        assert s.duration_ms == 10000
        assert s.constraints_resolved
        capped = editor.add_scene_from_asset("late", duration_ms=12000)
        assert capped.duration_ms == 10000

    def test_replace_scene_asset_clamps_to_video(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("img", duration_ms=6000)
        editor.replace_scene_asset(s.id, "vid")
        assert s.asset_id == "vid"
        assert s.duration_ms == 4000
        assert s.label == "Image"

    def test_replace_scene_with_audio_raises(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("img")
        with pytest.raises(ValueError):
            editor.replace_scene_asset(s.id, "song")

    def test_replace_audio_asset(self):
        editor = _make_editor()
        clip = editor.add_audio_from_asset("vo", duration_ms=20000)
        editor.replace_audio_asset(clip.id, "song")
        assert clip.asset_id == "song"
        assert clip.duration_ms == 10000


class TestTransportAndView:
    def test_playhead_clamped(self):
        editor = _make_editor()
        editor.add_scene_from_asset("img")
        editor.set_playhead(-50)
        assert editor.state.playhead_ms == 0
        editor.set_playhead(99999)
        assert editor.state.playhead_ms == editor.state.duration_ms
        editor.nudge_playhead(-1000)
        assert editor.state.playhead_ms == editor.state.duration_ms - 1000

    def test_zoom_clamped(self):
        editor = _make_editor()
        editor.set_zoom(1)
        assert editor.state.px_per_sec == 5.0
        editor.set_zoom(5000)
        assert editor.state.px_per_sec == 1000.0
        editor.set_zoom(100)
        editor.zoom_in()
        assert editor.state.px_per_sec == pytest.approx(120.0)
        editor.zoom_out()
        assert editor.state.px_per_sec == pytest.approx(100.0)

    def test_zoom_changes_snap_distance(self):
        editor = _make_editor()
        editor.set_zoom(50)
        assert editor.thresholds().snap_ms == pytest.approx(160.0)

    def test_select_and_find(self):
        editor = _make_editor()
        a, b, _ = _make_three_linked(editor)
        clip = editor.add_audio_from_asset("song")
        assert editor.find_scene_at(3500) == b.id
        assert editor.find_audio_at(500) == clip.id
        assert editor.find_scene_at(50000) is None
        editor.select_audio(clip.id)
        assert editor.state.selected_scene_id is None
        editor.select_scene(a.id)
        assert editor.state.selected_audio_id is None
        editor.select_scene("missing")
        assert editor.state.selected_scene_id is None

    def test_set_fps_reprojects_clips(self):
        editor = _make_editor()
        a, b, c = _make_three_linked(editor)
        editor.set_fps(24)
        assert editor.state.fps == 24
        assert (b.start_frame, b.duration_frame) == (72, 72)
        assert (b.start_ms, b.end_ms) == (3000, 6000)
        assert validate_links(editor.state) == []
        assert not editor.history.can_undo()

    def test_invalid_project_settings_raise(self):
        editor = _make_editor()
        with pytest.raises(ValueError):
            editor.set_fps(25)
        with pytest.raises(ValueError):
            editor.set_aspect("4:3")
        with pytest.raises(ValueError):
            editor.set_resolution("1x1")
        editor.set_aspect("16:9")
        editor.set_resolution("720x1280")
        assert editor.state.aspect == "16:9"
        assert editor.state.resolution == "720x1280"


class TestGestureTransactions:
    def test_drag_inside_open_transaction_is_one_step(self):
        editor = _make_editor()
        editor.add_scene_from_asset("img")
        s = editor.add_scene_from_asset("img", at_ms=6000)
        past = len(editor.history.past)

        editor.history.begin_tx("Drag")
        for ms in (5800, 5000, 4000, 3050):
            editor.move_scene(s.id, ms)
        assert editor.history.in_tx
        editor.history.commit_tx()

        assert len(editor.history.past) == past + 1
        assert s.start_ms == 3000
        editor.undo()
        assert editor.state.scenes[s.id].start_ms == 6000

    def test_standalone_move_records_itself(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("img")
        past = len(editor.history.past)
        editor.move_scene(s.id, 5000)
        assert len(editor.history.past) == past + 1

    def test_resize_wrappers(self):
        editor = _make_editor()
        s = editor.add_scene_from_asset("img")
        clip = editor.add_audio_from_asset("song")
        editor.resize_scene(s.id, "right", 2000)
        editor.resize_audio(clip.id, "left", 1000)
        assert s.end_ms == 2000
        assert clip.audio_offset_ms == 1000
