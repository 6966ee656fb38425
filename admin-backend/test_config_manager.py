import json
import os
import threading

import pytest

from config_manager import slugify, PAGE_FILES


@pytest.mark.parametrize("name, slug", [
    ("Cyber Security!", "cyber-security"),
    ("Python Programming", "python-programming"),
    ("  C++ / Data -- Structures ", "c-data-structures"),
    ("AI&ML 2026", "ai-ml-2026"),
])
def test_slugify(name, slug):
    assert slugify(name) == slug


def test_get_returns_document(config_db):
    config = config_db.get("pay")

    assert config["courseName"] == "AI & Machine Learning Mastery"


def test_get_missing_file_is_none(config_db, data_dir):
    os.remove(os.path.join(data_dir, PAGE_FILES["pay2"]))

    assert config_db.get("pay2") is None
    with pytest.raises(IOError):
        config_db.put("pay2", {"discount": 1})
    # never auto-created
    assert not os.path.exists(os.path.join(data_dir, PAGE_FILES["pay2"]))


def test_unknown_page_id(config_db):
    with pytest.raises(ValueError):
        config_db.get("nowhere")


def test_put_merges_top_level_fields(config_db, data_dir):
    before = config_db.get("pay1")

    after = config_db.put("pay1", {"discount": 5000, "discountLabel": "Festive"})

    assert after["discount"] == 5000
    assert after["discountLabel"] == "Festive"
    assert after["courseName"] == before["courseName"]
    assert after["originalPrice"] == before["originalPrice"]

    with open(os.path.join(data_dir, PAGE_FILES["pay1"]), encoding="utf-8") as f:
        raw = f.read()
    assert json.loads(raw) == after
    assert '\n  "discount": 5000' in raw


def test_put_section_merges_sub_object(config_db):
    fee = config_db.put_section("online", "accessFee", {"price": 1299})

    assert fee == {"price": 1299, "period": "month", "description": "Access to all live online batches"}
    assert config_db.get("online")["accessFee"]["price"] == 1299


def test_put_section_creates_missing_sub_object(config_db):
    info = config_db.put_section("offline", "pageInfo", {"title": "Campus Batches"})

    assert info == {"title": "Campus Batches"}


def test_put_course_updates_in_place(config_db):
    course = config_db.put_course("online", "web-development", {"price": 6499, "id": "renamed"})

    assert course["id"] == "web-development"
    assert course["price"] == 6499
    assert course["name"] == "Web Development"


def test_put_course_unknown_id(config_db):
    before = config_db.get("online")

    assert config_db.put_course("online", "missing", {"price": 1}) is None
    assert config_db.get("online") == before


def test_post_online_course_defaults(config_db):
    course = config_db.post_course("online", {"name": "Cyber Security!"})

    assert course == {
        "id": "cyber-security",
        "name": "Cyber Security!",
        "icon": "school",
        "color": "blue",
        "price": 0,
        "duration": "3 Months",
        "batchCount": 1,
    }
    assert config_db.get("online")["courses"][-1] == course


def test_post_offline_course_defaults(config_db):
    course = config_db.post_course("offline", {"name": "Ethical Hacking", "price": 9999})

    assert course["price"] == 9999
    assert course["enrolledSeats"] == 0
    assert course["totalSeats"] == 30
    assert course["instructor"] == "TBD"


def test_post_hybrid_course_level_colour(config_db):
    advanced = config_db.post_course("hybrid", {"name": "MLOps", "level": "Advanced"})
    beginner = config_db.post_course("hybrid", {"name": "Intro to Cloud"})

    assert advanced["levelColor"] == "purple"
    assert beginner["level"] == "Beginner"
    assert beginner["levelColor"] == "green"
    assert beginner["onlineSchedule"]["platform"] == "Zoom"
    assert beginner["fee"] == 999


def test_post_course_requires_name(config_db):
    with pytest.raises(ValueError, match="Course name is required"):
        config_db.post_course("online", {"price": 100})


@pytest.mark.parametrize("name", ["!!!", "   ", "++"])
def test_post_course_rejects_name_without_letters_or_digits(config_db, name):
    before = config_db.get("online")["courses"]

    with pytest.raises(ValueError, match="letters or digits"):
        config_db.post_course("online", {"name": name})
    assert config_db.get("online")["courses"] == before


def test_equivalent_names_produce_duplicate_ids(config_db):
    first = config_db.post_course("online", {"name": "Data Science"})
    second = config_db.post_course("online", {"name": "data-science!!"})

    ids = [c["id"] for c in config_db.get("online")["courses"]]
    assert first["id"] == second["id"] == "data-science"
    assert ids.count("data-science") == 2


def test_delete_course_removes_its_batches(config_db):
    deleted = config_db.delete_course("online", "python-programming")

    config = config_db.get("online")
    assert deleted["id"] == "python-programming"
    assert [c["id"] for c in config["courses"]] == ["web-development"]
    assert [b["courseId"] for b in config["batches"]] == ["web-development"]


def test_delete_unknown_course(config_db):
    assert config_db.delete_course("offline", "missing") is None


def test_put_batches_replaces_list(config_db):
    batches = [{"id": "b1", "courseId": "cloud-devops", "faculty": "Priya Nair"}]

    assert config_db.put_batches("hybrid", batches) == batches
    assert config_db.get("hybrid")["batches"] == batches


def test_put_batches_rejects_non_list(config_db):
    before = config_db.get("offline")["batches"]

    with pytest.raises(ValueError, match="Batches must be an array"):
        config_db.put_batches("offline", {"id": "b1"})
    assert config_db.get("offline")["batches"] == before


def test_post_batch(config_db):
    batch = config_db.post_batch("online", {
        "courseId": "web-development",
        "faculty": "Rahul Mehta",
        "day": "Saturday",
        "startTime": "10:00",
        "endTime": "12:00",
        "duration": "2 Hours",
    })

    assert batch["id"].startswith("batch-")
    assert config_db.get("online")["batches"][-1] == batch


def test_post_batch_validation(config_db):
    with pytest.raises(ValueError, match="faculty"):
        config_db.post_batch("online", {"courseId": "web-development", "startTime": "1", "endTime": "2"})
    with pytest.raises(ValueError, match="not found"):
        config_db.post_batch("online", {
            "courseId": "missing", "faculty": "X", "startTime": "1", "endTime": "2"
        })


def test_concurrent_course_posts_are_not_lost(config_db):
    names = [f"Course {n}" for n in range(20)]
    threads = [threading.Thread(target=config_db.post_course, args=("online", {"name": n})) for n in names]

    for t in threads:
        t.start()
    for t in threads:
        t.join()

    ids = {c["id"] for c in config_db.get("online")["courses"]}
    assert {slugify(n) for n in names} <= ids
