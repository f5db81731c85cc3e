"""Tests for imagor path encoding."""

import base64

import pytest

from pathforge.imagor import (
    EncodeOptions,
    ImagorFilter,
    decode_image_path,
    encode_image_path,
    encode_path,
    needs_base64,
    split_filters,
)
from pathforge.models import Dimensions, ImageEditorState, ImageLayer


def _layer(**kwargs) -> ImageLayer:
    data = {
        'id': 'layer',
        'imagePath': 'overlay.jpg',
        'originalDimensions': {'width': 800, 'height': 600},
        'x': 0,
        'y': 0,
    }
    data.update(kwargs)
    return ImageLayer.from_api_dict(data)


class TestImagePath:
    """Tests for image path escaping."""

    def test_plain_path_verbatim(self):
        """Safe paths are emitted as they are."""
        assert encode_image_path('photos/cat.jpg') == 'photos/cat.jpg'
        assert not needs_base64('photos/cat.jpg')

    @pytest.mark.parametrize("path", [
        'my photo.jpg', 'a?b.jpg', 'a#b.jpg', 'a&b.jpg', 'a(1).jpg', 'a,b.jpg',
        'fit-in/x.jpg', 'trim/x.jpg', 'smart/x.jpg',
    ])
    def test_unsafe_paths_are_base64(self, path):
        """Unsafe characters and reserved prefixes trigger base64 escaping."""
        encoded = encode_image_path(path)
        expected = base64.urlsafe_b64encode(path.encode()).decode().rstrip('=')
        assert encoded == 'b64:' + expected
        assert '=' not in encoded
        assert decode_image_path(encoded) == path

    def test_decode_plain_path(self):
        """Plain segments decode to themselves."""
        assert decode_image_path('cat.jpg') == 'cat.jpg'


class TestEncodePath:
    """Tests for encode_path segments."""

    def test_empty_state(self):
        """An empty state encodes to the image path alone."""
        assert encode_path(ImageEditorState(), 'photo.jpg') == 'photo.jpg'

    def test_fit_in_with_filter(self):
        """Fit-in, dimensions and filters appear in order."""
        state = ImageEditorState(width=800, height=600, fit_in=True, brightness=20)
        assert encode_path(state, 'photo.jpg') == 'fit-in/800x600/filters:brightness(20)/photo.jpg'

    def test_crop_segment(self):
        """Crop is encoded as left x top : right x bottom."""
        state = ImageEditorState(crop_left=10, crop_top=20, crop_width=100, crop_height=50)
        assert encode_path(state, 'photo.jpg') == '10x20:110x70/photo.jpg'

    def test_flip_signs(self):
        """Flips are encoded as negative dimensions."""
        state = ImageEditorState(width=300, height=200, h_flip=True, v_flip=True)
        assert encode_path(state, 'photo.jpg') == '-300x-200/photo.jpg'
        assert encode_path(ImageEditorState(h_flip=True), 'photo.jpg') == '-0x0/photo.jpg'

    def test_stretch_and_smart(self):
        """Stretch and smart flags become their own segments."""
        state = ImageEditorState(width=300, height=200, stretch=True, smart=True)
        assert encode_path(state, 'photo.jpg') == 'stretch/300x200/smart/photo.jpg'

    def test_symmetric_padding(self):
        """Symmetric padding uses the short form."""
        state = ImageEditorState(
            width=800, height=600, fill_color='white',
            padding_left=10, padding_right=10, padding_top=10, padding_bottom=10,
        )
        assert encode_path(state, 'photo.jpg') == '800x600/10x10/filters:fill(white)/photo.jpg'

    def test_asymmetric_padding(self):
        """Asymmetric padding lists all four sides."""
        state = ImageEditorState(
            width=800, height=600, fill_color='white',
            padding_left=10, padding_top=20, padding_right=30, padding_bottom=40,
        )
        assert encode_path(state, 'photo.jpg') == '800x600/10x20:30x40/filters:fill(white)/photo.jpg'

    def test_padding_without_fill_omitted(self):
        """Padding without a fill color is not encoded."""
        state = ImageEditorState(width=800, height=600, padding_left=10)
        assert encode_path(state, 'photo.jpg') == '800x600/photo.jpg'

    def test_alignment_only_in_fill_mode(self):
        """Alignment segments are dropped in fit-in mode."""
        state = ImageEditorState(width=100, height=100, h_align='left', v_align='top')
        assert encode_path(state, 'photo.jpg') == '100x100/left/top/photo.jpg'
        fit = state.model_copy(update={'fit_in': True})
        assert encode_path(fit, 'photo.jpg') == 'fit-in/100x100/photo.jpg'

    def test_filter_order(self):
        """The filter chain follows the fixed stage order."""
        state = ImageEditorState(
            proportion=50,
            strip_exif=True,
            quality=90,
            format='png',
            rotation=90,
            fill_color='black',
            round_corner_radius=10,
            blur=2,
            grayscale=True,
            contrast=5,
            brightness=10,
        )
        assert encode_path(state, 'photo.jpg') == (
            'filters:brightness(10):contrast(5):grayscale():blur(2):round_corner(10)'
            ':fill(black):rotate(90):format(png):quality(90):strip_exif():proportion(50)'
            '/photo.jpg'
        )

    def test_neutral_proportion_omitted(self):
        """A proportion of 100 is not encoded."""
        assert encode_path(ImageEditorState(proportion=100), 'photo.jpg') == 'photo.jpg'

    def test_preview_replaces_output_filters(self):
        """Preview output always uses the preview format."""
        state = ImageEditorState(format='png', quality=90, max_bytes=10000, strip_icc=True)
        path = encode_path(state, 'photo.jpg', options=EncodeOptions(for_preview=True))
        assert path == 'filters:format(webp):strip_icc()/photo.jpg'

    def test_extra_filters_before_proportion(self):
        """Extra filters are appended before proportion."""
        state = ImageEditorState(proportion=50)
        options = EncodeOptions(extra_filters=(ImagorFilter('attachment'),))
        assert encode_path(state, 'photo.jpg', options=options) == (
            'filters:attachment():proportion(50)/photo.jpg'
        )

    def test_preview_scale(self):
        """Dimensions, padding and blur scale; crop does not."""
        state = ImageEditorState(
            crop_left=10, crop_top=10, crop_width=200, crop_height=100,
            width=800, height=600, blur=2, fill_color='white',
            padding_left=10, padding_right=10, padding_top=10, padding_bottom=10,
        )
        path = encode_path(state, 'photo.jpg', options=EncodeOptions(for_preview=True, scale=0.5))
        assert path == '10x10:210x110/400x300/5x5/filters:blur(1):fill(white):format(webp)/photo.jpg'

    def test_preview_scale_without_dimensions(self):
        """Scaling without explicit dimensions uses the original size."""
        path = encode_path(
            ImageEditorState(), 'photo.jpg',
            original=Dimensions(width=1000, height=500),
            options=EncodeOptions(scale=0.5),
        )
        assert path == '500x250/photo.jpg'


class TestLayerFilters:
    """Tests for image() layer filters."""

    def test_layer_uses_original_dimensions(self):
        """A layer without transforms carries its original size."""
        state = ImageEditorState(layers=[_layer(x=100, y=50)])
        assert encode_path(state, 'base.jpg') == 'filters:image(/800x600/overlay.jpg,100,50)/base.jpg'

    def test_layer_keywords(self):
        """Keyword positions are emitted in long form."""
        state = ImageEditorState(layers=[_layer(x='r-20', y='center')])
        assert encode_path(state, 'base.jpg') == (
            'filters:image(/800x600/overlay.jpg,right-20,center)/base.jpg'
        )

    def test_layer_blend_arguments(self):
        """Alpha and blend mode are both emitted when either is non-default."""
        state = ImageEditorState(layers=[_layer(alpha=50)])
        assert encode_path(state, 'base.jpg') == (
            'filters:image(/800x600/overlay.jpg,0,0,50,normal)/base.jpg'
        )
        state = ImageEditorState(layers=[_layer(blendMode='multiply')])
        assert 'image(/800x600/overlay.jpg,0,0,0,multiply)' in encode_path(state, 'base.jpg')

    def test_hidden_layer_skipped(self):
        """Invisible layers are not encoded."""
        state = ImageEditorState(layers=[_layer(visible=False)])
        assert encode_path(state, 'base.jpg') == 'base.jpg'

    def test_layer_after_rotate_before_format(self):
        """image() filters sit between rotate and the output filters."""
        state = ImageEditorState(rotation=180, format='jpeg', layers=[_layer()])
        assert encode_path(state, 'base.jpg') == (
            'filters:rotate(180):image(/800x600/overlay.jpg,0,0):format(jpeg)/base.jpg'
        )

    def test_layer_transforms(self):
        """Layer transforms are encoded in the sub-path without output filters."""
        layer = _layer(transforms={'width': 400, 'height': 300, 'fitIn': True,
                                   'grayscale': True, 'format': 'png', 'proportion': 50})
        state = ImageEditorState(layers=[layer])
        assert encode_path(state, 'base.jpg') == (
            'filters:image(/fit-in/400x300/filters:grayscale()/overlay.jpg,0,0)/base.jpg'
        )

    def test_nested_layers(self):
        """Layers inside layers are encoded recursively."""
        inner = _layer(id='inner', imagePath='logo.png',
                       originalDimensions={'width': 100, 'height': 100},
                       x='right', y='bottom')
        outer = _layer(transforms={'width': 400, 'height': 300, 'layers': [inner.to_api_dict()]})
        state = ImageEditorState(layers=[outer])
        assert encode_path(state, 'base.jpg') == (
            'filters:image(/400x300/filters:image(/100x100/logo.png,right,bottom)'
            '/overlay.jpg,0,0)/base.jpg'
        )

    def test_layer_fill_axis_resolved(self):
        """Layer fill axes are resolved against the canvas."""
        layer = _layer(transforms={'widthFull': True, 'widthFullOffset': 100, 'height': 200})
        state = ImageEditorState(width=1000, height=800, layers=[layer])
        path = encode_path(state, 'base.jpg', original=Dimensions(width=1920, height=1080))
        assert 'image(/900x200/overlay.jpg,0,0)' in path

    def test_layer_path_escaped(self):
        """Layer image paths use the same escaping."""
        state = ImageEditorState(layers=[_layer(imagePath='my logo.png')])
        escaped = encode_image_path('my logo.png')
        assert f'image(/800x600/{escaped},0,0)' in encode_path(state, 'base.jpg')

    def test_layer_positions_scaled(self):
        """Numeric positions scale with the preview."""
        state = ImageEditorState(layers=[_layer(x=-100, y=40)])
        path = encode_path(state, 'base.jpg', original=Dimensions(width=1000, height=1000),
                           options=EncodeOptions(scale=0.5))
        assert 'image(/400x300/overlay.jpg,-50,20)' in path


class TestFilterHelpers:
    """Tests for ImagorFilter and split_filters."""

    def test_parse_filter(self):
        """Filters parse into name and args."""
        f = ImagorFilter.parse('blur(2.5)')
        assert f.name == 'blur'
        assert f.args == '2.5'
        assert f.to_string() == 'blur(2.5)'

    def test_parse_invalid_filter(self):
        """Malformed filters raise ValueError."""
        with pytest.raises(ValueError):
            ImagorFilter.parse('blur')

    def test_split_nested(self):
        """Colons inside image() arguments do not split filters."""
        filters = split_filters('filters:image(/filters:blur(2):grayscale()/a.jpg,0,0):format(webp)')
        assert [f.name for f in filters] == ['image', 'format']
        assert filters[0].args == '/filters:blur(2):grayscale()/a.jpg,0,0'
